# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
secp256r1 (NIST P-256) ECDSA keys and signatures.

P-256 is the curve used by passkeys. On chain a secp256r1 key is always
wrapped in an ``AnyPublicKey`` and its signatures usually arrive inside a
WebAuthn assertion (see :mod:`aptos_core.webauthn`), where the authenticator
signs ``sha256(authenticator_data || sha256(client_data_json))``. Keys held
locally sign ``sha3_256(message)`` like the other ECDSA scheme.

Encodings match secp256k1: 32-byte scalar, 65-byte uncompressed public key,
64-byte low-s ``r || s`` signature.
"""

from __future__ import annotations

import hashlib
import unittest

from ecdsa import NIST256p, SigningKey, VerifyingKey, util

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer

SCHEME = "secp256r1"
ORDER = NIST256p.generator.order()


def _low_s(signature: bytes) -> bytes:
    r, s = util.sigdecode_string(signature, ORDER)
    if s > ORDER // 2:
        return util.sigencode_string(r, ORDER - s, ORDER)
    return signature


class PrivateKey(asymmetric_crypto.PrivateKey):
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
        parsed_value = PrivateKey.parse_hex_input(
            value, asymmetric_crypto.PrivateKeyVariant.Secp256r1, strict
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
        return PrivateKey(SigningKey.from_string(value, NIST256p, hashlib.sha3_256))

    def hex(self) -> str:
        return f"0x{self.key.to_string().hex()}"

    def aip80(self) -> str:
        return PrivateKey.format_private_key(
            self.hex(), asymmetric_crypto.PrivateKeyVariant.Secp256r1
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verifying_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(
            SigningKey.generate(curve=NIST256p, hashfunc=hashlib.sha3_256)
        )

    def sign(self, data: bytes) -> Signature:
        """Sign ``sha3_256(data)`` with a deterministic, low-s signature."""
        return self._sign_digest(hashlib.sha3_256(data).digest())

    def sign_sha256(self, data: bytes) -> Signature:
        """Sign ``sha256(data)``, the digest a passkey authenticator signs."""
        return self._sign_digest(hashlib.sha256(data).digest())

    def _sign_digest(self, digest: bytes) -> Signature:
        sig = self.key.sign_digest_deterministic(
            digest, hashfunc=hashlib.sha256, sigencode=util.sigencode_string
        )
        return Signature(_low_s(sig))

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        return PrivateKey.from_scalar_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.to_string())


class PublicKey(asymmetric_crypto.PublicKey):
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
        if len(key) == PublicKey.LENGTH_WITH_PREFIX_LENGTH and key[0] == 0x04:
            key = key[1:]
        if len(key) != PublicKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                f"{SCHEME} public key", len(key), PublicKey.LENGTH_WITH_PREFIX_LENGTH
            )
        try:
            return PublicKey(VerifyingKey.from_string(key, NIST256p, hashlib.sha3_256))
        except Exception as e:
            raise asymmetric_crypto.InvalidCurvePoint(SCHEME) from e

    def hex(self) -> str:
        return f"0x{self.to_crypto_bytes().hex()}"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """Verify a low-s signature over ``sha3_256(data)``."""
        return self._verify_digest(hashlib.sha3_256(data).digest(), signature)

    def verify_sha256(
        self, data: bytes, signature: asymmetric_crypto.Signature
    ) -> bool:
        """Verify a low-s signature over ``sha256(data)`` (WebAuthn assertions)."""
        return self._verify_digest(hashlib.sha256(data).digest(), signature)

    def _verify_digest(
        self, digest: bytes, signature: asymmetric_crypto.Signature
    ) -> bool:
        try:
            if not isinstance(signature, Signature):
                return False
            signature.check()
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
        """Raise unless the signature is 64 bytes, in range and low-s."""
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
    def test_sign_and_verify(self):
        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(b"test_message")
        self.assertTrue(public_key.verify(b"test_message", signature))
        self.assertFalse(public_key.verify(b"other_message", signature))
        self.assertFalse(public_key.verify_sha256(b"test_message", signature))

    def test_sign_is_deterministic(self):
        private_key = PrivateKey.random()
        self.assertEqual(private_key.sign(b"data"), private_key.sign(b"data"))

    def test_sha256_path(self):
        private_key = PrivateKey.random()
        signature = private_key.sign_sha256(b"verification data")
        self.assertTrue(
            private_key.public_key().verify_sha256(b"verification data", signature)
        )
        self.assertFalse(
            private_key.public_key().verify(b"verification data", signature)
        )

    def test_aip80(self):
        private_key = PrivateKey.from_hex(b"\x01" * 32)
        formatted = private_key.aip80()
        self.assertEqual(formatted, "secp256r1-priv-0x" + "01" * 32)
        self.assertEqual(PrivateKey.from_str(formatted, True), private_key)
        self.assertEqual(repr(private_key), "<PrivateKey:REDACTED>")

    def test_high_s_rejected(self):
        private_key = PrivateKey.random()
        signature = private_key.sign(b"malleable")
        r, s = util.sigdecode_string(signature.data(), ORDER)
        high = Signature(util.sigencode_string(r, ORDER - s, ORDER))
        self.assertFalse(private_key.public_key().verify(b"malleable", high))

    def test_out_of_range(self):
        with self.assertRaises(asymmetric_crypto.KeyOutOfRange):
            PrivateKey.from_hex(ORDER.to_bytes(32, "big"))
        zero_r = Signature(b"\x00" * 32 + b"\x01" * 32)
        with self.assertRaises(asymmetric_crypto.KeyOutOfRange):
            zero_r.check()
        self.assertFalse(PrivateKey.random().public_key().verify(b"x", zero_r))

    def test_public_key_encodings(self):
        public_key = PrivateKey.random().public_key()
        full = public_key.to_crypto_bytes()
        self.assertEqual(len(full), 65)
        self.assertEqual(full[0], 0x04)
        self.assertEqual(PublicKey.from_crypto_bytes(full), public_key)
        self.assertEqual(PublicKey.from_crypto_bytes(full[1:]), public_key)
        self.assertEqual(PublicKey.from_str(public_key.hex()), public_key)

        with self.assertRaises(asymmetric_crypto.InvalidCurvePoint):
            PublicKey.from_crypto_bytes(b"\x04" + b"\x02" * 64)

    def test_serialization(self):
        private_key = PrivateKey.random()
        signature = private_key.sign(b"another_message")

        ser = Serializer()
        private_key.public_key().serialize(ser)
        signature.serialize(ser)
        der = Deserializer(ser.output())
        self.assertEqual(PublicKey.deserialize(der), private_key.public_key())
        self.assertEqual(Signature.deserialize(der), signature)


if __name__ == "__main__":
    unittest.main()
