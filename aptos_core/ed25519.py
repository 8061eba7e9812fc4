# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Ed25519 keys and signatures, single and k-of-n (MultiEd25519).

Ed25519 is the default Aptos signature scheme. Messages are signed as-is
(no pre-hashing); the Aptos signing message already carries its own domain
separating prehash.

The module includes:
- PrivateKey: 32-byte seed, redacted from ``str()``/``repr()``
- PublicKey: 32-byte key
- Signature: 64-byte signature
- MultiPublicKey: 2 to 32 keys plus a threshold byte
- MultiSignature: signatures plus a 4-byte big-endian signer bitmap

The cryptography is provided by PyNaCl.

Examples:
    Basic key generation and signing::

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        message = b"Hello, Aptos!"
        signature = private_key.sign(message)
        assert public_key.verify(message, signature)

    Multi-signature operations::

        keys = [PrivateKey.random().public_key() for _ in range(3)]
        multisig_key = MultiPublicKey(keys, threshold=2)

        multisig = MultiSignature.from_key_map(multisig_key, [
            (keys[0], sig1), (keys[2], sig3)
        ])
        assert multisig_key.verify(message, multisig)

    AIP-80 compliant key formats::

        key = PrivateKey.from_str("ed25519-priv-0x123...", strict=True)
        aip80_string = key.aip80()
"""

from __future__ import annotations

import json
import unittest
from typing import List, Tuple, cast

from nacl.signing import SigningKey, VerifyKey

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer


class PrivateKey(asymmetric_crypto.PrivateKey):
    """Ed25519 private key.

    Attributes:
        LENGTH: The byte length of Ed25519 private keys (32)
        key: The underlying NaCl SigningKey instance

    Examples:
        Creating and using private keys::

            private_key = PrivateKey.random()
            private_key = PrivateKey.from_str("ed25519-priv-0x123...", strict=True)

            signature = private_key.sign(b"message")
            public_key = private_key.public_key()

            str(private_key)  # "<PrivateKey:REDACTED>"
    """

    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return asymmetric_crypto.REDACTED

    def __repr__(self):
        return asymmetric_crypto.REDACTED

    @staticmethod
    def from_hex(value: str | bytes, strict: bool | None = None) -> PrivateKey:
        """Create a private key from hex, an AIP-80 string or raw bytes.

        Args:
            value: The key material.
            strict: See :meth:`asymmetric_crypto.PrivateKey.parse_hex_input`.

        Raises:
            InvalidKeyLength: If the key is not 32 bytes.
            ValueError: If the input cannot be parsed.
        """
        key = PrivateKey.parse_hex_input(
            value, asymmetric_crypto.PrivateKeyVariant.Ed25519, strict
        )
        if len(key) != PrivateKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "ed25519 private key", len(key), PrivateKey.LENGTH
            )
        return PrivateKey(SigningKey(key))

    @staticmethod
    def from_str(value: str, strict: bool | None = None) -> PrivateKey:
        return PrivateKey.from_hex(value, strict)

    def hex(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def aip80(self) -> str:
        """Export the key as ``ed25519-priv-0x...``."""
        return PrivateKey.format_private_key(
            self.hex(), asymmetric_crypto.PrivateKeyVariant.Ed25519
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        return Signature(self.key.sign(data).signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        key = deserializer.to_bytes()
        if len(key) != PrivateKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "ed25519 private key", len(key), PrivateKey.LENGTH
            )

        return PrivateKey(SigningKey(key))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class PublicKey(asymmetric_crypto.PublicKey):
    """Ed25519 public key.

    Attributes:
        LENGTH: The byte length of Ed25519 public keys (32)
        key: The underlying NaCl VerifyKey instance
    """

    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey.from_crypto_bytes(bytes.fromhex(value))

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> PublicKey:
        if len(indata) != PublicKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "ed25519 public key", len(indata), PublicKey.LENGTH
            )
        return PublicKey(VerifyKey(indata))

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """Verify an Ed25519 signature over ``data``.

        Returns False for a signature of any other type, a malformed signature
        or a signature that does not match.
        """
        try:
            if not isinstance(signature, Signature):
                return False
            self.key.verify(data, signature.data())
        except Exception:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class MultiPublicKey(asymmetric_crypto.PublicKey):
    """A k-of-n Ed25519 public key.

    The crypto bytes (what the BCS length prefix wraps and what the
    authentication key hashes) are the concatenated 32-byte keys followed by
    a single threshold byte.

    Attributes:
        keys: List of individual Ed25519 public keys.
        threshold: Minimum number of signatures required for validation.
        MIN_KEYS: Minimum number of keys allowed (2).
        MAX_KEYS: Maximum number of keys allowed (32).
        MIN_THRESHOLD: Minimum threshold value (1).

    Examples:
        Creating a 2-of-3 multisig::

            keys = [PrivateKey.random().public_key() for _ in range(3)]
            multisig = MultiPublicKey(keys, threshold=2)
    """

    keys: List[PublicKey]
    threshold: int

    MIN_KEYS = 2
    MAX_KEYS = asymmetric_crypto.MAX_MULTI_SIGNATURE_KEYS
    MIN_THRESHOLD = 1

    def __init__(self, keys: List[PublicKey], threshold: int):
        """Initialize a MultiPublicKey with keys and threshold.

        Args:
            keys: List of Ed25519 public keys (2-32 keys).
            threshold: Number of signatures required (1 to len(keys)).

        Raises:
            CryptoError: If the number of keys is out of range.
            InvalidThreshold: If the threshold is out of range.
        """
        if not self.MIN_KEYS <= len(keys) <= self.MAX_KEYS:
            raise asymmetric_crypto.CryptoError(
                f"Must have between {self.MIN_KEYS} and {self.MAX_KEYS} keys."
            )
        if not self.MIN_THRESHOLD <= threshold <= len(keys):
            raise asymmetric_crypto.InvalidThreshold(threshold, len(keys))

        self.keys = keys
        self.threshold = threshold

    def __eq__(self, other: object):
        if not isinstance(other, MultiPublicKey):
            return NotImplemented
        return self.keys == other.keys and self.threshold == other.threshold

    def __str__(self) -> str:
        return f"{self.threshold}-of-{len(self.keys)} Multi-Ed25519 public key"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """Verify a MultiSignature: valid signatures must reach the threshold.

        A bitmap that marks a different number of signers than there are
        signatures, or marks a signer beyond the last key, is rejected.
        """
        try:
            if not isinstance(signature, MultiSignature):
                return False
            asymmetric_crypto.check_threshold_signature(
                self.keys,
                self.threshold,
                signature.bitmap,
                signature.signatures,
                data,
            )
        except Exception:
            return False
        return True

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> MultiPublicKey:
        """Parse ``key_1 || ... || key_n || threshold``."""
        if len(indata) % PublicKey.LENGTH != 1:
            raise asymmetric_crypto.InvalidKeyLength(
                "multi-ed25519 public key",
                len(indata),
                (len(indata) // PublicKey.LENGTH) * PublicKey.LENGTH + 1,
            )
        total_keys = len(indata) // PublicKey.LENGTH
        keys: List[PublicKey] = []
        for idx in range(total_keys):
            start = idx * PublicKey.LENGTH
            end = (idx + 1) * PublicKey.LENGTH
            keys.append(PublicKey(VerifyKey(indata[start:end])))
        threshold = indata[-1]
        return MultiPublicKey(keys, threshold)

    def to_crypto_bytes(self) -> bytes:
        key_bytes = bytearray()
        for key in self.keys:
            key_bytes.extend(key.to_crypto_bytes())
        key_bytes.append(self.threshold)
        return bytes(key_bytes)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiPublicKey:
        indata = deserializer.to_bytes()
        return MultiPublicKey.from_crypto_bytes(indata)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


class Signature(asymmetric_crypto.Signature):
    """A 64-byte Ed25519 signature."""

    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def __repr__(self) -> str:
        return self.__str__()

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        signature = deserializer.to_bytes()
        if len(signature) != Signature.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "ed25519 signature", len(signature), Signature.LENGTH
            )

        return Signature(signature)

    @staticmethod
    def from_str(value: str) -> Signature:
        if value[0:2] == "0x":
            value = value[2:]
        return Signature(bytes.fromhex(value))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class MultiSignature(asymmetric_crypto.Signature):
    """Ed25519 signatures from a subset of a MultiPublicKey's signers.

    The wire form is one length-prefixed blob: the 64-byte signatures in
    ascending signer order followed by a 4-byte bitmap. Bit ``i`` (mask
    ``0x80 >> (i % 8)`` of byte ``i // 8``) marks signer ``i``.

    The signatures and bitmap are kept exactly as given, so a signature whose
    bitmap disagrees with its signatures can be represented and is rejected at
    verification time rather than at construction.

    Attributes:
        signatures: Signatures in ascending signer order.
        bitmap: The 4-byte signer bitmap.
        BITMAP_NUM_OF_BYTES: Size of the signer bitmap (4 bytes).

    Examples:
        Creating a multisig from individual signatures::

            multisig = MultiSignature.from_key_map(
                multisig_public_key,
                [(public_key1, sig1), (public_key3, sig3)]
            )
    """

    signatures: List[Signature]
    bitmap: bytes
    BITMAP_NUM_OF_BYTES: int = asymmetric_crypto.MULTI_SIGNATURE_BITMAP_BYTES

    def __init__(self, signatures: List[Signature], bitmap: bytes):
        if len(bitmap) != self.BITMAP_NUM_OF_BYTES:
            raise asymmetric_crypto.InvalidKeyLength(
                "multi-ed25519 bitmap", len(bitmap), self.BITMAP_NUM_OF_BYTES
            )
        self.signatures = signatures
        self.bitmap = bitmap

    def __eq__(self, other: object):
        if not isinstance(other, MultiSignature):
            return NotImplemented
        return self.signatures == other.signatures and self.bitmap == other.bitmap

    def __str__(self) -> str:
        return f"{self.signer_indices()}: {self.signatures}"

    def signer_indices(self) -> List[int]:
        return asymmetric_crypto.bitmap_indices(self.bitmap)

    @staticmethod
    def from_indexed(signatures: List[Tuple[int, Signature]]) -> MultiSignature:
        """Build from ``(signer_index, signature)`` pairs in any order.

        Raises:
            BitmapSizeMismatch: If an index does not fit in the bitmap.
        """
        ordered = sorted(signatures, key=lambda entry: entry[0])
        bitmap = asymmetric_crypto.bitmap_from_indices([idx for idx, _ in ordered])
        return MultiSignature([signature for _, signature in ordered], bitmap)

    @staticmethod
    def from_key_map(
        public_key: MultiPublicKey,
        signatures_map: List[Tuple[PublicKey, Signature]],
    ) -> MultiSignature:
        """Build from ``(public_key, signature)`` pairs.

        Raises:
            ValueError: If a public key is not part of ``public_key``.
        """
        signatures = []

        for entry in signatures_map:
            signatures.append((public_key.keys.index(entry[0]), entry[1]))
        return MultiSignature.from_indexed(signatures)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiSignature:
        signature_bytes = deserializer.to_bytes()
        count = len(signature_bytes) // Signature.LENGTH
        expected = count * Signature.LENGTH + MultiSignature.BITMAP_NUM_OF_BYTES
        if expected != len(signature_bytes):
            raise asymmetric_crypto.InvalidKeyLength(
                "multi-ed25519 signature", len(signature_bytes), expected
            )

        signatures = []
        for idx in range(count):
            left = idx * Signature.LENGTH
            signatures.append(Signature(signature_bytes[left : left + Signature.LENGTH]))
        bitmap = signature_bytes[-MultiSignature.BITMAP_NUM_OF_BYTES :]
        return MultiSignature(signatures, bitmap)

    def serialize(self, serializer: Serializer):
        signature_bytes = bytearray()
        for signature in self.signatures:
            signature_bytes.extend(signature.data())
        signature_bytes.extend(self.bitmap)
        serializer.to_bytes(bytes(signature_bytes))


class Test(unittest.TestCase):
    def test_known_answer(self):
        private_key = PrivateKey.from_str(
            "ed25519-priv-0xc5338cd251c22daa8c9c9cc94f498cc8a5c7e1d2e75287a5dda91096fe64efa5"
        )
        public_key = private_key.public_key()
        self.assertEqual(
            str(public_key),
            "0xde19e5d1880cac87d57484ce9ed2e84cf0f9599f12e7cc3a52e4e7657a763f2c",
        )

        signature = private_key.sign(b"hello world")
        self.assertEqual(
            str(signature),
            "0x9e653d56a09247570bb174a389e85b9226abd5c403ea6c504b386626a145158c"
            "d4efd66fc5e071c0e19538a96a05ddbda24d3c51e1e6a9dacc6bb1ce775cce07",
        )
        self.assertTrue(public_key.verify(b"hello world", signature))
        self.assertFalse(public_key.verify(b"hello world!", signature))

    def test_private_key_from_str(self):
        private_key_hex = PrivateKey.from_str(
            "0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe", False
        )
        private_key_with_prefix = PrivateKey.from_str(
            "ed25519-priv-0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe",
            True,
        )
        private_key_bytes = PrivateKey.from_hex(
            bytes.fromhex(
                "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
            ),
            False,
        )
        self.assertEqual(private_key_hex.hex(), private_key_with_prefix.hex())
        self.assertEqual(private_key_hex.hex(), private_key_bytes.hex())

    def test_private_key_length(self):
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength) as cm:
            PrivateKey.from_hex(b"\x01" * 31)
        self.assertEqual(cm.exception.actual, 31)
        self.assertEqual(cm.exception.expected, 32)

    def test_private_key_redaction(self):
        private_key_with_prefix = "ed25519-priv-0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        private_key = PrivateKey.from_str(private_key_with_prefix, True)
        self.assertEqual(str(private_key), "<PrivateKey:REDACTED>")
        self.assertEqual(repr(private_key), "<PrivateKey:REDACTED>")
        self.assertNotIn("4e5e3be6", f"{[private_key]}")
        self.assertEqual(private_key.aip80(), private_key_with_prefix)
        with self.assertRaises(TypeError):
            json.dumps(private_key)

    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertTrue(public_key.verify(in_value, signature))

    def test_verify_is_total(self):
        public_key = PrivateKey.random().public_key()
        self.assertFalse(public_key.verify(b"data", Signature(b"\x00" * 12)))
        self.assertFalse(public_key.verify(b"data", Signature(b"\xff" * 64)))
        self.assertFalse(public_key.verify(b"data", "not a signature"))  # type: ignore

    def test_private_key_serialization(self):
        private_key = PrivateKey.random()
        ser = Serializer()

        private_key.serialize(ser)
        ser_private_key = PrivateKey.deserialize(Deserializer(ser.output()))
        self.assertEqual(private_key, ser_private_key)

    def test_public_key_serialization(self):
        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        ser = Serializer()
        public_key.serialize(ser)
        ser_public_key = PublicKey.deserialize(Deserializer(ser.output()))
        self.assertEqual(public_key, ser_public_key)

    def test_public_key_wrong_length(self):
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            PublicKey.from_bytes(b"\x1f" + b"\x00" * 31)

    def test_signature_key_serialization(self):
        private_key = PrivateKey.random()
        in_value = b"another_message"
        signature = private_key.sign(in_value)

        ser = Serializer()
        signature.serialize(ser)
        ser_signature = Signature.deserialize(Deserializer(ser.output()))
        self.assertEqual(signature, ser_signature)

    def test_multisig(self):
        private_key_1 = PrivateKey.from_str(
            "ed25519-priv-0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        )
        private_key_2 = PrivateKey.from_str(
            "ed25519-priv-0x1e70e49b78f976644e2c51754a2f049d3ff041869c669523ba95b172c7329901"
        )
        multisig_public_key = MultiPublicKey(
            [private_key_1.public_key(), private_key_2.public_key()], 1
        )

        expected_public_key_bcs = (
            "41754bb6a4720a658bdd5f532995955db0971ad3519acbde2f1149c3857348006c"
            "1634cd4607073f2be4a6f2aadc2b866ddb117398a675f2096ed906b20e0bf2c901"
        )
        self.assertEqual(multisig_public_key.to_bytes().hex(), expected_public_key_bcs)
        self.assertEqual(
            MultiPublicKey.from_bytes(multisig_public_key.to_bytes()),
            multisig_public_key,
        )

        # Signer 1 of 0..1 signs; its bit is 0x40 in the first bitmap byte.
        signature = private_key_2.sign(b"multisig")
        multisig_signature = MultiSignature.from_key_map(
            multisig_public_key, [(private_key_2.public_key(), signature)]
        )
        expected_multisig_signature_bcs = (
            "4402e90d8f300d79963cb7159ffa6f620f5bba4af5d32a7176bfb5480b43897cf"
            "4886bbb4042182f4647c9b04f02dbf989966f0facceec52d22bdcc7ce631bfc0c"
            "40000000"
        )
        self.assertEqual(
            multisig_signature.to_bytes().hex(), expected_multisig_signature_bcs
        )
        deserializer = Deserializer(bytes.fromhex(expected_multisig_signature_bcs))
        multisig_signature_deserialized = deserializer.struct(MultiSignature)
        self.assertEqual(multisig_signature_deserialized, multisig_signature)
        self.assertEqual(multisig_signature_deserialized.signer_indices(), [1])

        self.assertTrue(multisig_public_key.verify(b"multisig", multisig_signature))
        self.assertFalse(multisig_public_key.verify(b"other", multisig_signature))

    def test_multisig_threshold(self):
        private_keys = [PrivateKey.random() for _ in range(3)]
        public_key = MultiPublicKey([key.public_key() for key in private_keys], 2)
        message = b"two of three"

        signatures = [(0, private_keys[0].sign(message)), (2, private_keys[2].sign(message))]
        self.assertTrue(
            public_key.verify(message, MultiSignature.from_indexed(signatures))
        )

        # One valid signature does not meet the threshold.
        one = MultiSignature.from_indexed(signatures[:1])
        self.assertFalse(public_key.verify(message, one))

        # The bitmap marks two signers but only one signature is present.
        mismatched = MultiSignature([signatures[1][1]], bytes([0xA0, 0, 0, 0]))
        self.assertFalse(public_key.verify(message, mismatched))
        with self.assertRaises(asymmetric_crypto.SignatureCountMismatch):
            asymmetric_crypto.check_threshold_signature(
                public_key.keys, 2, mismatched.bitmap, mismatched.signatures, message
            )

        # A marked signer beyond the last key.
        beyond = MultiSignature(
            [signatures[0][1], signatures[1][1]], bytes([0x90, 0, 0, 0])
        )
        self.assertFalse(public_key.verify(message, beyond))

    def test_multisig_range_checks(self):
        keys = [
            PrivateKey.random().public_key() for x in range(MultiPublicKey.MAX_KEYS + 1)
        ]
        with self.assertRaisesRegex(
            asymmetric_crypto.CryptoError, "Must have between 2 and 32 keys."
        ):
            MultiPublicKey([keys[0]], 1)
        with self.assertRaisesRegex(
            asymmetric_crypto.CryptoError, "Must have between 2 and 32 keys."
        ):
            MultiPublicKey(keys, 1)
        with self.assertRaises(asymmetric_crypto.InvalidThreshold):
            MultiPublicKey(keys[0:4], 0)
        with self.assertRaises(asymmetric_crypto.InvalidThreshold):
            MultiPublicKey(keys[0:4], 5)

        # The same checks apply when decoding.
        valid = MultiPublicKey(keys[0:4], 2).to_crypto_bytes()
        with self.assertRaises(asymmetric_crypto.InvalidThreshold):
            MultiPublicKey.from_crypto_bytes(valid[:-1] + b"\x05")
        with self.assertRaisesRegex(
            asymmetric_crypto.CryptoError, "Must have between 2 and 32 keys."
        ):
            MultiPublicKey.from_crypto_bytes(valid[:32] + b"\x01")
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            MultiPublicKey.from_crypto_bytes(valid[:-2])


if __name__ == "__main__":
    unittest.main()
