# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Scheme-tagged keys and signatures for SingleKey and MultiKey accounts.

``AnyPublicKey`` and ``AnySignature`` wrap a concrete key or signature
together with a ULEB128 variant tag, so that a single account type can hold
any supported scheme:

============  ===========================  =========================
Tag           AnyPublicKey                 AnySignature
============  ===========================  =========================
0             Ed25519                      Ed25519
1             secp256k1                    secp256k1
2             secp256r1                    WebAuthn (secp256r1)
3             Keyless                      Keyless
4             Federated keyless            (none)
============  ===========================  =========================

``MultiKey`` is a k-of-n set of ``AnyPublicKey`` values, possibly of mixed
schemes, and ``MultiKeySignature`` carries the signatures of the signers
in key order together with the signer bitmap.

Examples:
    A SingleKey secp256k1 signer::

        private_key = secp256k1_ecdsa.PrivateKey.random()
        public_key = AnyPublicKey(private_key.public_key())
        signature = AnySignature(private_key.sign(message))
        assert public_key.verify(message, signature)

    A 2-of-3 MultiKey signed by the first and last keys::

        multi_key = MultiKey([key_a, key_b, key_c], 2)
        signature = MultiKeySignature.from_indexed([(0, sig_a), (2, sig_c)])
        assert multi_key.verify(message, signature)
"""

from __future__ import annotations

import unittest
from typing import List, Tuple

from . import (
    asymmetric_crypto,
    bcs,
    ed25519,
    keyless,
    secp256k1_ecdsa,
    secp256r1_ecdsa,
    webauthn,
)
from .bcs import Deserializer, InvalidVariant, Serializer


class AnyPublicKey(asymmetric_crypto.PublicKey):
    """A public key tagged with its scheme.

    The authentication key of a SingleKey account hashes the full BCS
    encoding of this wrapper, tag included, so ``to_crypto_bytes`` returns
    the encoding rather than the raw key.

    Attributes:
        variant: The scheme tag
        public_key: The wrapped key
    """

    ED25519: int = 0
    SECP256K1_ECDSA: int = 1
    SECP256R1_ECDSA: int = 2
    KEYLESS: int = 3
    FEDERATED_KEYLESS: int = 4

    variant: int
    public_key: asymmetric_crypto.PublicKey

    def __init__(self, public_key: asymmetric_crypto.PublicKey):
        if isinstance(public_key, ed25519.PublicKey):
            self.variant = AnyPublicKey.ED25519
        elif isinstance(public_key, secp256k1_ecdsa.PublicKey):
            self.variant = AnyPublicKey.SECP256K1_ECDSA
        elif isinstance(public_key, secp256r1_ecdsa.PublicKey):
            self.variant = AnyPublicKey.SECP256R1_ECDSA
        elif isinstance(public_key, keyless.KeylessPublicKey):
            self.variant = AnyPublicKey.KEYLESS
        elif isinstance(public_key, keyless.FederatedKeylessPublicKey):
            self.variant = AnyPublicKey.FEDERATED_KEYLESS
        else:
            raise NotImplementedError()
        self.public_key = public_key

    def __eq__(self, other: object):
        if not isinstance(other, AnyPublicKey):
            return NotImplemented
        return self.variant == other.variant and self.public_key == other.public_key

    def __str__(self) -> str:
        return f"{self.public_key}"

    def to_crypto_bytes(self) -> bytes:
        return bcs.encode(self)

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """Verify an ``AnySignature`` of the matching scheme over ``data``.

        WebAuthn signatures are checked against the secp256r1 key through
        their assertion; keyless keys cannot be verified locally.
        """
        try:
            if not isinstance(signature, AnySignature):
                return False
            inner = signature.signature
            if isinstance(inner, webauthn.PartialAuthenticatorAssertionResponse):
                return inner.verify(data, self.public_key)
            return self.public_key.verify(data, inner)
        except Exception:
            return False

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> AnyPublicKey:
        return bcs.decode(indata, AnyPublicKey)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AnyPublicKey:
        variant = deserializer.uleb128()
        if variant == AnyPublicKey.ED25519:
            public_key: asymmetric_crypto.PublicKey = ed25519.PublicKey.deserialize(
                deserializer
            )
        elif variant == AnyPublicKey.SECP256K1_ECDSA:
            public_key = secp256k1_ecdsa.PublicKey.deserialize(deserializer)
        elif variant == AnyPublicKey.SECP256R1_ECDSA:
            public_key = secp256r1_ecdsa.PublicKey.deserialize(deserializer)
        elif variant == AnyPublicKey.KEYLESS:
            public_key = keyless.KeylessPublicKey.deserialize(deserializer)
        elif variant == AnyPublicKey.FEDERATED_KEYLESS:
            public_key = keyless.FederatedKeylessPublicKey.deserialize(deserializer)
        else:
            raise deserializer.fail(InvalidVariant("AnyPublicKey", variant))
        return AnyPublicKey(public_key)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.public_key)


class AnySignature(asymmetric_crypto.Signature):
    """A signature tagged with its scheme.

    secp256r1 keys sign through WebAuthn, so a bare secp256r1 signature has no
    tag of its own and must be wrapped in an assertion first.
    """

    ED25519: int = 0
    SECP256K1_ECDSA: int = 1
    WEBAUTHN: int = 2
    KEYLESS: int = 3

    variant: int
    signature: asymmetric_crypto.Signature

    def __init__(self, signature: asymmetric_crypto.Signature):
        if isinstance(signature, ed25519.Signature):
            self.variant = AnySignature.ED25519
        elif isinstance(signature, secp256k1_ecdsa.Signature):
            self.variant = AnySignature.SECP256K1_ECDSA
        elif isinstance(signature, webauthn.PartialAuthenticatorAssertionResponse):
            self.variant = AnySignature.WEBAUTHN
        elif isinstance(signature, keyless.KeylessSignature):
            self.variant = AnySignature.KEYLESS
        else:
            raise NotImplementedError()
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, AnySignature):
            return NotImplemented
        return self.variant == other.variant and self.signature == other.signature

    def __str__(self) -> str:
        return f"{self.signature}"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AnySignature:
        variant = deserializer.uleb128()
        if variant == AnySignature.ED25519:
            signature: asymmetric_crypto.Signature = ed25519.Signature.deserialize(
                deserializer
            )
        elif variant == AnySignature.SECP256K1_ECDSA:
            signature = secp256k1_ecdsa.Signature.deserialize(deserializer)
        elif variant == AnySignature.WEBAUTHN:
            signature = webauthn.PartialAuthenticatorAssertionResponse.deserialize(
                deserializer
            )
        elif variant == AnySignature.KEYLESS:
            signature = keyless.KeylessSignature.deserialize(deserializer)
        else:
            raise deserializer.fail(InvalidVariant("AnySignature", variant))
        return AnySignature(signature)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.signature)


class MultiKey(asymmetric_crypto.PublicKey):
    """A k-of-n set of scheme-tagged public keys.

    Encoded as ``seq<AnyPublicKey> || u8 threshold``.

    Attributes:
        keys: The keys, in the order the signer bitmap refers to them
        threshold: Number of valid signatures required
    """

    MIN_KEYS: int = 1
    MAX_KEYS: int = asymmetric_crypto.MAX_MULTI_SIGNATURE_KEYS
    MIN_THRESHOLD: int = 1

    keys: List[AnyPublicKey]
    threshold: int

    def __init__(self, keys: List[asymmetric_crypto.PublicKey], threshold: int):
        if not self.MIN_KEYS <= len(keys) <= self.MAX_KEYS:
            raise asymmetric_crypto.CryptoError(
                f"Must have between {self.MIN_KEYS} and {self.MAX_KEYS} keys."
            )
        if not self.MIN_THRESHOLD <= threshold <= len(keys):
            raise asymmetric_crypto.InvalidThreshold(threshold, len(keys))

        self.keys = []
        for key in keys:
            if isinstance(key, AnyPublicKey):
                self.keys.append(key)
            else:
                self.keys.append(AnyPublicKey(key))
        self.threshold = threshold

    def __eq__(self, other: object):
        if not isinstance(other, MultiKey):
            return NotImplemented
        return self.keys == other.keys and self.threshold == other.threshold

    def __str__(self) -> str:
        return f"{self.threshold}-of-{len(self.keys)} Multi key"

    def index_of(self, key: asymmetric_crypto.PublicKey) -> int:
        if not isinstance(key, AnyPublicKey):
            key = AnyPublicKey(key)
        return self.keys.index(key)

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """Verify a ``MultiKeySignature``.

        The i-th signature is checked against the key at the i-th set bit of
        the bitmap, and at least ``threshold`` of them must verify.
        """
        try:
            if not isinstance(signature, MultiKeySignature):
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
    def from_crypto_bytes(indata: bytes) -> MultiKey:
        return bcs.decode(indata, MultiKey)

    def to_crypto_bytes(self) -> bytes:
        return bcs.encode(self)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiKey:
        keys = deserializer.sequence(AnyPublicKey.deserialize)
        threshold = deserializer.u8()
        return MultiKey(keys, threshold)

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.keys, Serializer.struct)
        serializer.u8(self.threshold)


class MultiKeySignature(asymmetric_crypto.Signature):
    """Signatures of a subset of a ``MultiKey`` plus the signer bitmap.

    Encoded as ``seq<AnySignature> || bytes bitmap``. Signer ``i`` is bit
    ``0x80 >> (i % 8)`` of bitmap byte ``i // 8``, and ``signatures`` is
    ordered by signer index. The bitmap is always 4 bytes.
    """

    signatures: List[AnySignature]
    bitmap: bytes

    def __init__(
        self,
        signatures: List[asymmetric_crypto.Signature],
        bitmap: bytes,
    ):
        if len(bitmap) != asymmetric_crypto.MULTI_SIGNATURE_BITMAP_BYTES:
            raise asymmetric_crypto.InvalidKeyLength(
                "multi-key bitmap",
                len(bitmap),
                asymmetric_crypto.MULTI_SIGNATURE_BITMAP_BYTES,
            )
        self.signatures = []
        for signature in signatures:
            if isinstance(signature, AnySignature):
                self.signatures.append(signature)
            else:
                self.signatures.append(AnySignature(signature))
        self.bitmap = bitmap

    def __eq__(self, other: object):
        if not isinstance(other, MultiKeySignature):
            return NotImplemented
        return self.signatures == other.signatures and self.bitmap == other.bitmap

    def __str__(self) -> str:
        return f"{list(zip(self.signer_indices(), self.signatures))}"

    def signer_indices(self) -> List[int]:
        return asymmetric_crypto.bitmap_indices(self.bitmap)

    @staticmethod
    def from_indexed(
        signatures: List[Tuple[int, asymmetric_crypto.Signature]]
    ) -> MultiKeySignature:
        """Build from ``(key index, signature)`` pairs given in any order."""
        ordered = sorted(signatures, key=lambda pair: pair[0])
        bitmap = asymmetric_crypto.bitmap_from_indices([index for index, _ in ordered])
        return MultiKeySignature([signature for _, signature in ordered], bitmap)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiKeySignature:
        signatures = deserializer.sequence(AnySignature.deserialize)
        bitmap = deserializer.read_bounded_bytes(
            "multi-key bitmap",
            asymmetric_crypto.MULTI_SIGNATURE_BITMAP_BYTES,
            asymmetric_crypto.MULTI_SIGNATURE_BITMAP_BYTES,
        )
        return MultiKeySignature(signatures, bitmap)

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.signatures, Serializer.struct)
        serializer.to_bytes(self.bitmap)


class Test(unittest.TestCase):
    def setUp(self):
        self.key_a = ed25519.PrivateKey.random()
        self.key_b = ed25519.PrivateKey.random()
        self.key_c = secp256k1_ecdsa.PrivateKey.random()
        self.multi_key = MultiKey(
            [
                self.key_a.public_key(),
                self.key_b.public_key(),
                self.key_c.public_key(),
            ],
            2,
        )
        self.message = b"multi key message"

    def test_any_public_key_tags(self):
        ed = AnyPublicKey(self.key_a.public_key())
        self.assertEqual(ed.to_crypto_bytes()[:2], b"\x00\x20")
        secp = AnyPublicKey(self.key_c.public_key())
        self.assertEqual(secp.to_crypto_bytes()[:3], b"\x01\x41\x04")
        r1 = AnyPublicKey(secp256r1_ecdsa.PrivateKey.random().public_key())
        self.assertEqual(r1.variant, 2)
        key = keyless.KeylessPublicKey("https://accounts.google.com", b"\x01" * 32)
        self.assertEqual(AnyPublicKey(key).variant, 3)

        for wrapped in (ed, secp, r1, AnyPublicKey(key)):
            decoded = AnyPublicKey.from_crypto_bytes(wrapped.to_crypto_bytes())
            self.assertEqual(decoded, wrapped)

    def test_unknown_variant(self):
        with self.assertRaises(InvalidVariant):
            AnyPublicKey.deserialize(Deserializer(b"\x09"))
        with self.assertRaises(InvalidVariant):
            AnySignature.deserialize(Deserializer(b"\x04"))

    def test_single_key_verify(self):
        public_key = AnyPublicKey(self.key_c.public_key())
        signature = AnySignature(self.key_c.sign(self.message))
        self.assertTrue(public_key.verify(self.message, signature))
        self.assertFalse(public_key.verify(b"other", signature))
        self.assertFalse(
            public_key.verify(self.message, AnySignature(self.key_a.sign(self.message)))
        )
        self.assertFalse(public_key.verify(self.message, self.key_c.sign(self.message)))

    def test_webauthn_single_key(self):
        private_key = secp256r1_ecdsa.PrivateKey.random()
        public_key = AnyPublicKey(private_key.public_key())
        signature = AnySignature(webauthn.assert_message(private_key, self.message))
        self.assertEqual(signature.variant, AnySignature.WEBAUTHN)
        self.assertTrue(public_key.verify(self.message, signature))
        self.assertFalse(public_key.verify(b"other", signature))

        decoded = bcs.decode(bcs.encode(signature), AnySignature)
        self.assertEqual(decoded, signature)

    def test_raw_secp256r1_signature_needs_assertion(self):
        with self.assertRaises(NotImplementedError):
            AnySignature(secp256r1_ecdsa.PrivateKey.random().sign(self.message))

    def test_multi_key_two_of_three(self):
        signature = MultiKeySignature.from_indexed(
            [
                (2, self.key_c.sign(self.message)),
                (0, self.key_a.sign(self.message)),
            ]
        )
        self.assertEqual(signature.bitmap, bytes.fromhex("a0000000"))
        self.assertEqual(signature.signer_indices(), [0, 2])
        self.assertEqual(signature.signatures[0].variant, AnySignature.ED25519)
        self.assertTrue(self.multi_key.verify(self.message, signature))
        self.assertFalse(self.multi_key.verify(b"other", signature))

        decoded = bcs.decode(bcs.encode(signature), MultiKeySignature)
        self.assertEqual(decoded, signature)
        self.assertTrue(self.multi_key.verify(self.message, decoded))

    def test_multi_key_removed_signature_rejected(self):
        signature = MultiKeySignature.from_indexed(
            [
                (0, self.key_a.sign(self.message)),
                (2, self.key_c.sign(self.message)),
            ]
        )
        signature.signatures = signature.signatures[1:]
        self.assertFalse(self.multi_key.verify(self.message, signature))
        with self.assertRaises(asymmetric_crypto.SignatureCountMismatch):
            asymmetric_crypto.check_threshold_signature(
                self.multi_key.keys,
                2,
                signature.bitmap,
                signature.signatures,
                self.message,
            )

        only_c = MultiKeySignature.from_indexed([(2, self.key_c.sign(self.message))])
        self.assertFalse(self.multi_key.verify(self.message, only_c))

    def test_multi_key_bitmap_past_last_key(self):
        signature = MultiKeySignature.from_indexed(
            [
                (0, self.key_a.sign(self.message)),
                (5, self.key_b.sign(self.message)),
            ]
        )
        self.assertFalse(self.multi_key.verify(self.message, signature))

    def test_multi_key_swapped_signatures_rejected(self):
        signature = MultiKeySignature(
            [self.key_c.sign(self.message), self.key_a.sign(self.message)],
            asymmetric_crypto.bitmap_from_indices([0, 2]),
        )
        self.assertFalse(self.multi_key.verify(self.message, signature))

    def test_multi_key_encoding(self):
        out = self.multi_key.to_crypto_bytes()
        self.assertEqual(out[0], 3)
        self.assertEqual(out[-1], 2)
        self.assertEqual(MultiKey.from_crypto_bytes(out), self.multi_key)
        self.assertEqual(self.multi_key.index_of(self.key_c.public_key()), 2)

    def test_multi_key_shape(self):
        keys = [self.key_a.public_key()]
        self.assertEqual(MultiKey(keys, 1).threshold, 1)
        with self.assertRaises(asymmetric_crypto.InvalidThreshold):
            MultiKey(keys, 2)
        with self.assertRaises(asymmetric_crypto.InvalidThreshold):
            MultiKey(keys, 0)
        with self.assertRaises(asymmetric_crypto.CryptoError):
            MultiKey([], 1)
        with self.assertRaises(asymmetric_crypto.CryptoError):
            MultiKey(keys * 33, 1)

    def test_short_bitmap_rejected(self):
        ser = Serializer()
        ser.sequence([AnySignature(self.key_a.sign(self.message))], Serializer.struct)
        ser.to_bytes(b"\x80")
        with self.assertRaises(bcs.LengthOutOfBounds):
            bcs.decode(ser.output(), MultiKeySignature)

        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            MultiKeySignature([self.key_a.sign(self.message)], b"\x80")

    def test_long_bitmap_rejected(self):
        ser = Serializer()
        ser.sequence([], Serializer.struct)
        ser.to_bytes(b"\x80\x00\x00\x00\x00")
        with self.assertRaises(bcs.LengthOutOfBounds):
            bcs.decode(ser.output(), MultiKeySignature)


if __name__ == "__main__":
    unittest.main()
