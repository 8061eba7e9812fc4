# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
secp256k1 ECDSA keys and signatures.

secp256k1 accounts are always wrapped in an ``AnyPublicKey`` (the SingleKey
authentication scheme). The message is hashed with SHA3-256 before signing
and verification; nonces are derived deterministically (RFC 6979 with
HMAC-SHA256) so signing the same message twice yields the same signature.

Encodings:
- Private key: 32-byte big-endian scalar in ``[1, n)``
- Public key: 65-byte uncompressed point, ``0x04 || x || y`` (64-byte input
  without the prefix is accepted when parsing)
- Signature: 64 bytes, ``r || s``, no recovery byte

Signatures are normalized to low-s at signing time and verification rejects
high-s signatures, which removes ECDSA's ``(r, s)`` / ``(r, n - s)``
malleability.

The curve arithmetic is provided by the ``ecdsa`` package.

Examples:
    Key generation and signing::

        private_key = PrivateKey.random()
        signature = private_key.sign(b"Hello, Aptos!")
        assert private_key.public_key().verify(b"Hello, Aptos!", signature)

    AIP-80 keys::

        key = PrivateKey.from_str("secp256k1-priv-0x306f...", strict=True)
"""

from __future__ import annotations

import hashlib
import unittest

from ecdsa import SECP256k1, SigningKey, VerifyingKey, util

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer

SCHEME = "secp256k1"
ORDER = SECP256k1.generator.order()


class PrivateKey(asymmetric_crypto.PrivateKey):
    """secp256k1 private key.

    Attributes:
        LENGTH: The byte length of the private scalar (32)
        key: The underlying ecdsa SigningKey
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

        Raises:
            InvalidKeyLength: If the key is not 32 bytes.
            KeyOutOfRange: If the scalar is zero or not below the curve order.
        """
        parsed_value = PrivateKey.parse_hex_input(
            value, asymmetric_crypto.PrivateKeyVariant.Secp256k1, strict
        )
        return PrivateKey.from_scalar_bytes(parsed_value)

    @staticmethod
    def from_str(value: str, strict: bool | None = None) -> PrivateKey:
        return PrivateKey.from_hex(value, strict)

    @staticmethod
    def from_scalar_bytes(value: bytes) -> PrivateKey:
        if len(value) != PrivateKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                f"{SCHEME} private key", len(value), PrivateKey.LENGTH
            )
        if not 0 < int.from_bytes(value, "big") < ORDER:
            raise asymmetric_crypto.KeyOutOfRange(SCHEME)
        return PrivateKey(SigningKey.from_string(value, SECP256k1, hashlib.sha3_256))

    def hex(self) -> str:
        return f"0x{self.key.to_string().hex()}"

    def aip80(self) -> str:
        return PrivateKey.format_private_key(
            self.hex(), asymmetric_crypto.PrivateKeyVariant.Secp256k1
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verifying_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(
            SigningKey.generate(curve=SECP256k1, hashfunc=hashlib.sha3_256)
        )

    def sign(self, data: bytes) -> Signature:
        """Sign ``sha3_256(data)`` and return the low-s ``r || s`` signature."""
        digest = hashlib.sha3_256(data).digest()
        sig = self.key.sign_digest_deterministic(
            digest, hashfunc=hashlib.sha256, sigencode=util.sigencode_string
        )
        r, s = util.sigdecode_string(sig, ORDER)
        # (r, s) and (r, n - s) are both valid; only the low form is accepted.
        if s > ORDER // 2:
            sig = util.sigencode_string(r, ORDER - s, ORDER)
        return Signature(sig)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        return PrivateKey.from_scalar_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.to_string())


class PublicKey(asymmetric_crypto.PublicKey):
    """secp256k1 public key, serialized as the 65-byte uncompressed point.

    Attributes:
        LENGTH: Byte length of the raw ``x || y`` coordinates (64)
        LENGTH_WITH_PREFIX_LENGTH: Byte length with the 0x04 prefix (65)
        key: The underlying ecdsa VerifyingKey
    """

    LENGTH: int = 64
    LENGTH_WITH_PREFIX_LENGTH: int = 65

    key: VerifyingKey

    def __init__(self, key: VerifyingKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return self.hex()

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey.from_crypto_bytes(bytes.fromhex(value))

    @staticmethod
    def from_crypto_bytes(key: bytes) -> PublicKey:
        """Parse a 65-byte uncompressed point, or the 64 coordinate bytes.

        Raises:
            InvalidKeyLength: For any other length or prefix.
            InvalidCurvePoint: If the coordinates are not on the curve.
        """
        if len(key) == PublicKey.LENGTH_WITH_PREFIX_LENGTH and key[0] == 0x04:
            key = key[1:]
        if len(key) != PublicKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                f"{SCHEME} public key", len(key), PublicKey.LENGTH_WITH_PREFIX_LENGTH
            )
        try:
            return PublicKey(
                VerifyingKey.from_string(key, SECP256k1, hashlib.sha3_256)
            )
        except Exception as e:
            raise asymmetric_crypto.InvalidCurvePoint(SCHEME) from e

    def hex(self) -> str:
        return f"0x{self.to_crypto_bytes().hex()}"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """Verify a low-s signature over ``sha3_256(data)``."""
        try:
            if not isinstance(signature, Signature):
                return False
            signature.check()
            digest = hashlib.sha3_256(data).digest()
            self.key.verify_digest(
                signature.data(), digest, sigdecode=util.sigdecode_string
            )
        except Exception:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return b"\x04" + self.key.to_string()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


class Signature(asymmetric_crypto.Signature):
    """A 64-byte ``r || s`` secp256k1 signature."""

    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return self.hex()

    def hex(self) -> str:
        return f"0x{self.signature.hex()}"

    def check(self):
        """Raise if the signature is malformed, out of range or high-s.

        Raises:
            InvalidKeyLength: If it is not 64 bytes.
            KeyOutOfRange: If r or s is outside ``[1, n)``.
            SignatureNotLowS: If s is above ``n / 2``.
        """
        if len(self.signature) != Signature.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                f"{SCHEME} signature", len(self.signature), Signature.LENGTH
            )
        r, s = util.sigdecode_string(self.signature, ORDER)
        if not (0 < r < ORDER and 0 < s < ORDER):
            raise asymmetric_crypto.KeyOutOfRange(SCHEME, "signature out of range")
        if s > ORDER // 2:
            raise asymmetric_crypto.SignatureNotLowS(SCHEME)

    @staticmethod
    def from_str(value: str) -> Signature:
        if value[0:2] == "0x":
            value = value[2:]
        if len(value) != Signature.LENGTH * 2:
            raise asymmetric_crypto.InvalidKeyLength(
                f"{SCHEME} signature", len(value) // 2, Signature.LENGTH
            )
        return Signature(bytes.fromhex(value))

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        signature = deserializer.to_bytes()
        if len(signature) != Signature.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                f"{SCHEME} signature", len(signature), Signature.LENGTH
            )

        return Signature(signature)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class Test(unittest.TestCase):
    def test_private_key_from_str(self):
        private_key_hex = PrivateKey.from_str(
            "0x306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4", False
        )
        private_key_with_prefix = PrivateKey.from_str(
            "secp256k1-priv-0x306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4",
            True,
        )
        private_key_bytes = PrivateKey.from_hex(
            bytes.fromhex(
                "306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4"
            ),
            False,
        )
        self.assertEqual(private_key_hex, private_key_with_prefix)
        self.assertEqual(private_key_hex, private_key_bytes)

    def test_private_key_aip80_and_redaction(self):
        private_key_with_prefix = "secp256k1-priv-0x306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4"
        private_key = PrivateKey.from_str(private_key_with_prefix, True)
        self.assertEqual(private_key.aip80(), private_key_with_prefix)
        self.assertEqual(str(private_key), "<PrivateKey:REDACTED>")

    def test_private_key_range(self):
        with self.assertRaises(asymmetric_crypto.KeyOutOfRange):
            PrivateKey.from_hex(b"\x00" * 32)
        with self.assertRaises(asymmetric_crypto.KeyOutOfRange):
            PrivateKey.from_hex(ORDER.to_bytes(32, "big"))
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            PrivateKey.from_hex(b"\x01" * 33)

    def test_known_answer(self):
        private_key = PrivateKey.from_str(
            "secp256k1-priv-0xd107155adf816a0a94c6db3c9489c13ad8a1eda7ada2e558ba3bfa47c020347e"
        )
        public_key = private_key.public_key()
        self.assertEqual(
            public_key.hex(),
            "0x04acdd16651b839c24665b7e2033b55225f384554949fef46c397b5275f37f6e"
            "e95554d70fb5d9f93c5831ebf695c7206e7477ce708f03ae9bb2862dc6c9e033ea",
        )

        message = bytes.fromhex("68656c6c6f20776f726c64")
        signature = private_key.sign(message)
        self.assertEqual(
            signature.hex(),
            "0xd0d634e843b61339473b028105930ace022980708b2855954b977da09df84a77"
            "0c0b68c29c8ca1b5409a5085b0ec263be80e433c83fcf6debb82f3447e71edca",
        )
        self.assertTrue(public_key.verify(message, signature))
        self.assertFalse(public_key.verify(bytes.fromhex("1337deadbeef"), signature))

    def test_vectors(self):
        private_key_hex = "secp256k1-priv-0x306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4"
        public_key_hex = "0x04210c9129e35337ff5d6488f90f18d842cf985f06e0baeff8df4bfb2ac4221863e2631b971a237b5db0aa71188e33250732dd461d56ee623cbe0426a5c2db79ef"
        signature_hex = "0xa539b0973e76fa99b2a864eebd5da950b4dfb399c7afe57ddb34130e454fc9db04dceb2c3d4260b8cc3d3952ab21b5d36c7dc76277fe3747764e6762d12bd9a9"
        data = b"Hello world"

        private_key = PrivateKey.from_str(private_key_hex)
        local_public_key = private_key.public_key()
        local_signature = private_key.sign(data)
        self.assertTrue(local_public_key.verify(data, local_signature))

        original_public_key = PublicKey.from_str(public_key_hex)
        self.assertTrue(original_public_key.verify(data, local_signature))
        self.assertEqual(public_key_hex[2:], local_public_key.to_crypto_bytes().hex())

        original_signature = Signature.from_str(signature_hex)
        self.assertTrue(original_public_key.verify(data, original_signature))

    def test_high_s_rejected(self):
        private_key = PrivateKey.random()
        message = b"malleable"
        signature = private_key.sign(message)
        r, s = util.sigdecode_string(signature.data(), ORDER)
        self.assertLessEqual(s, ORDER // 2)

        high = Signature(util.sigencode_string(r, ORDER - s, ORDER))
        self.assertFalse(private_key.public_key().verify(message, high))
        with self.assertRaises(asymmetric_crypto.SignatureNotLowS):
            high.check()

    def test_verify_is_total(self):
        public_key = PrivateKey.random().public_key()
        self.assertFalse(public_key.verify(b"data", Signature(b"\x00" * 64)))
        self.assertFalse(public_key.verify(b"data", Signature(b"\x01" * 10)))

    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertTrue(public_key.verify(in_value, signature))

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
        self.assertEqual(len(ser.output()), 66)
        ser_public_key = PublicKey.deserialize(Deserializer(ser.output()))
        self.assertEqual(public_key, ser_public_key)

    def test_public_key_not_on_curve(self):
        with self.assertRaises(asymmetric_crypto.InvalidCurvePoint):
            PublicKey.from_crypto_bytes(b"\x04" + b"\x01" * 64)
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            PublicKey.from_crypto_bytes(b"\x04" + b"\x01" * 32)

    def test_signature_key_serialization(self):
        private_key = PrivateKey.random()
        in_value = b"another_message"
        signature = private_key.sign(in_value)

        ser = Serializer()
        signature.serialize(ser)
        ser_signature = Signature.deserialize(Deserializer(ser.output()))
        self.assertEqual(signature, ser_signature)


if __name__ == "__main__":
    unittest.main()
