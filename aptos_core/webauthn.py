# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
WebAuthn (passkey) signatures over secp256r1.

A passkey does not sign the Aptos signing message directly. The browser puts
``base64url(sha3_256(signing_message))`` into the ``challenge`` field of the
client data JSON and the authenticator signs
``authenticator_data || sha256(client_data_json)`` with ECDSA/SHA-256.

Verifying a :class:`PartialAuthenticatorAssertionResponse` therefore:

1. bounds-checks the authenticator data (37 to 1024 bytes) and the client
   data JSON (at most 8192 bytes),
2. decodes the base64url challenge, which must be exactly 32 bytes,
3. compares it in constant time against ``sha3_256(message)``,
4. verifies the ECDSA signature over
   ``authenticator_data || sha256(client_data_json)``.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import re
import unittest
from dataclasses import dataclass

from . import asymmetric_crypto, secp256r1_ecdsa
from .bcs import Deserializer, InvalidVariant, LengthOutOfBounds, Serializer

MIN_AUTHENTICATOR_DATA_BYTES = 37
MAX_AUTHENTICATOR_DATA_BYTES = 1024
MAX_CLIENT_DATA_JSON_BYTES = 8192
CHALLENGE_LENGTH = 32

_BASE64URL = re.compile(r"[A-Za-z0-9_-]*={0,2}")


class WebAuthnError(asymmetric_crypto.CryptoError):
    """Base class for malformed WebAuthn assertions."""


class ChallengeLengthMismatch(WebAuthnError):
    actual: int
    expected: int

    def __init__(self, actual: int, expected: int = CHALLENGE_LENGTH):
        super().__init__(
            f"Invalid challenge length: expected {expected} bytes, found {actual}"
        )
        self.actual = actual
        self.expected = expected


class ChallengeDecodeFailed(WebAuthnError):
    """The client data JSON or its base64url challenge could not be decoded."""


class AuthenticatorDataSizeOutOfBounds(WebAuthnError):
    actual: int

    def __init__(self, actual: int):
        super().__init__(
            f"Authenticator data is {actual} bytes, must be between "
            f"{MIN_AUTHENTICATOR_DATA_BYTES} and {MAX_AUTHENTICATOR_DATA_BYTES}"
        )
        self.actual = actual


class ClientDataOversize(WebAuthnError):
    actual: int

    def __init__(self, actual: int):
        super().__init__(
            f"Client data JSON is {actual} bytes, must be between 1 and "
            f"{MAX_CLIENT_DATA_JSON_BYTES}"
        )
        self.actual = actual


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def base64url_decode(value: str) -> bytes:
    """Decode base64url with or without padding, rejecting other alphabets."""
    if not _BASE64URL.fullmatch(value):
        raise ChallengeDecodeFailed(f"Invalid base64url challenge: {value!r}")
    value = value.rstrip("=")
    try:
        return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (binascii.Error, ValueError) as e:
        raise ChallengeDecodeFailed(f"Invalid base64url challenge: {e}") from e


@dataclass
class CollectedClientData:
    """The fields of the browser's client data JSON that are checked."""

    type: str
    challenge: str
    origin: str
    cross_origin: bool = False

    @staticmethod
    def from_json(data: bytes) -> CollectedClientData:
        try:
            parsed = json.loads(data)
            return CollectedClientData(
                parsed["type"],
                parsed["challenge"],
                parsed["origin"],
                bool(parsed.get("crossOrigin", False)),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise ChallengeDecodeFailed(f"Invalid client data JSON: {e}") from e

    def to_json(self) -> bytes:
        return json.dumps(
            {
                "type": self.type,
                "challenge": self.challenge,
                "origin": self.origin,
                "crossOrigin": self.cross_origin,
            },
            separators=(",", ":"),
        ).encode()


class AssertionSignature:
    SECP256R1: int = 0

    variant: int
    signature: secp256r1_ecdsa.Signature

    def __init__(self, signature: secp256r1_ecdsa.Signature):
        self.variant = AssertionSignature.SECP256R1
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, AssertionSignature):
            return NotImplemented
        return self.variant == other.variant and self.signature == other.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AssertionSignature:
        variant = deserializer.uleb128()
        if variant != AssertionSignature.SECP256R1:
            raise deserializer.fail(InvalidVariant("AssertionSignature", variant))
        return AssertionSignature(secp256r1_ecdsa.Signature.deserialize(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.signature)


class PartialAuthenticatorAssertionResponse(asymmetric_crypto.Signature):
    signature: AssertionSignature
    authenticator_data: bytes
    client_data_json: bytes

    def __init__(
        self,
        signature: AssertionSignature | secp256r1_ecdsa.Signature,
        authenticator_data: bytes,
        client_data_json: bytes,
    ):
        if isinstance(signature, secp256r1_ecdsa.Signature):
            signature = AssertionSignature(signature)
        self.signature = signature
        self.authenticator_data = authenticator_data
        self.client_data_json = client_data_json

    def __eq__(self, other: object):
        if not isinstance(other, PartialAuthenticatorAssertionResponse):
            return NotImplemented
        return (
            self.signature == other.signature
            and self.authenticator_data == other.authenticator_data
            and self.client_data_json == other.client_data_json
        )

    def __str__(self) -> str:
        return f"WebAuthn[{self.signature.signature}]"

    def check_bounds(self):
        """
        Raises:
            AuthenticatorDataSizeOutOfBounds: If the authenticator data is
                shorter than 37 or longer than 1024 bytes.
            ClientDataOversize: If the client data JSON is empty or longer
                than 8192 bytes.
        """
        if not (
            MIN_AUTHENTICATOR_DATA_BYTES
            <= len(self.authenticator_data)
            <= MAX_AUTHENTICATOR_DATA_BYTES
        ):
            raise AuthenticatorDataSizeOutOfBounds(len(self.authenticator_data))
        if not 0 < len(self.client_data_json) <= MAX_CLIENT_DATA_JSON_BYTES:
            raise ClientDataOversize(len(self.client_data_json))

    def client_data(self) -> CollectedClientData:
        self.check_bounds()
        return CollectedClientData.from_json(self.client_data_json)

    def challenge(self) -> bytes:
        """The decoded 32-byte challenge from the client data JSON."""
        challenge = base64url_decode(self.client_data().challenge)
        if len(challenge) != CHALLENGE_LENGTH:
            raise ChallengeLengthMismatch(len(challenge))
        return challenge

    def verification_data(self) -> bytes:
        return self.authenticator_data + hashlib.sha256(self.client_data_json).digest()

    def verify(self, data: bytes, public_key: secp256r1_ecdsa.PublicKey) -> bool:
        """Verify the assertion was produced for ``sha3_256(data)`` by ``public_key``."""
        return self._verify_challenge(hashlib.sha3_256(data).digest(), public_key)

    def verify_arbitrary_message(
        self, challenge: bytes, public_key: secp256r1_ecdsa.PublicKey
    ) -> bool:
        """Verify an assertion whose challenge is ``challenge`` itself."""
        return self._verify_challenge(challenge, public_key)

    def _verify_challenge(
        self, expected: bytes, public_key: secp256r1_ecdsa.PublicKey
    ) -> bool:
        try:
            if not isinstance(public_key, secp256r1_ecdsa.PublicKey):
                return False
            if not hmac.compare_digest(self.challenge(), expected):
                return False
            return public_key.verify_sha256(
                self.verification_data(), self.signature.signature
            )
        except Exception:
            return False

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PartialAuthenticatorAssertionResponse:
        signature = AssertionSignature.deserialize(deserializer)
        authenticator_data = deserializer.read_bounded_bytes(
            "authenticator data",
            MIN_AUTHENTICATOR_DATA_BYTES,
            MAX_AUTHENTICATOR_DATA_BYTES,
        )
        client_data_json = deserializer.read_bounded_bytes(
            "client data JSON", 1, MAX_CLIENT_DATA_JSON_BYTES
        )
        return PartialAuthenticatorAssertionResponse(
            signature, authenticator_data, client_data_json
        )

    def serialize(self, serializer: Serializer):
        serializer.struct(self.signature)
        serializer.to_bytes(self.authenticator_data)
        serializer.to_bytes(self.client_data_json)


def assert_message(
    private_key: secp256r1_ecdsa.PrivateKey,
    data: bytes,
    origin: str = "http://localhost",
    authenticator_data: bytes | None = None,
) -> PartialAuthenticatorAssertionResponse:
    """Produce the assertion a passkey holding ``private_key`` returns for ``data``.

    Useful for tests and for software passkeys.
    """
    if authenticator_data is None:
        # rpIdHash, flags (user present and verified), signCount
        authenticator_data = (
            hashlib.sha256(origin.encode()).digest() + b"\x05" + b"\x00" * 4
        )
    client_data = CollectedClientData(
        "webauthn.get", base64url_encode(hashlib.sha3_256(data).digest()), origin
    )
    client_data_json = client_data.to_json()
    signature = private_key.sign_sha256(
        authenticator_data + hashlib.sha256(client_data_json).digest()
    )
    return PartialAuthenticatorAssertionResponse(
        signature, authenticator_data, client_data_json
    )


class Test(unittest.TestCase):
    def setUp(self):
        self.private_key = secp256r1_ecdsa.PrivateKey.random()
        self.public_key = self.private_key.public_key()
        self.message = b"APTOS::RawTransaction signing message"

    def test_verify(self):
        assertion = assert_message(self.private_key, self.message)
        self.assertEqual(len(assertion.authenticator_data), 37)
        self.assertTrue(assertion.verify(self.message, self.public_key))
        self.assertFalse(assertion.verify(b"different", self.public_key))

        other_key = secp256r1_ecdsa.PrivateKey.random().public_key()
        self.assertFalse(assertion.verify(self.message, other_key))

    def test_challenge(self):
        assertion = assert_message(self.private_key, self.message)
        self.assertEqual(
            assertion.challenge(), hashlib.sha3_256(self.message).digest()
        )
        self.assertEqual(assertion.client_data().type, "webauthn.get")

    def test_challenge_errors(self):
        short = CollectedClientData("webauthn.get", base64url_encode(b"\x01" * 16), "o")
        assertion = PartialAuthenticatorAssertionResponse(
            secp256r1_ecdsa.Signature(b"\x01" * 64), b"\x00" * 37, short.to_json()
        )
        with self.assertRaises(ChallengeLengthMismatch):
            assertion.challenge()
        self.assertFalse(assertion.verify(self.message, self.public_key))

        bad = CollectedClientData("webauthn.get", "not+base64/url", "o")
        assertion.client_data_json = bad.to_json()
        with self.assertRaises(ChallengeDecodeFailed):
            assertion.challenge()

        assertion.client_data_json = b"{not json"
        with self.assertRaises(ChallengeDecodeFailed):
            assertion.challenge()

    def test_padded_challenge_accepted(self):
        challenge = base64.urlsafe_b64encode(b"\x07" * 32).decode()
        self.assertTrue(challenge.endswith("="))
        self.assertEqual(base64url_decode(challenge), b"\x07" * 32)

    def test_bounds(self):
        assertion = assert_message(self.private_key, self.message)
        assertion.authenticator_data = b"\x00" * 36
        with self.assertRaises(AuthenticatorDataSizeOutOfBounds):
            assertion.check_bounds()
        self.assertFalse(assertion.verify(self.message, self.public_key))

        assertion.authenticator_data = b"\x00" * 37
        assertion.client_data_json = b" " * (MAX_CLIENT_DATA_JSON_BYTES + 1)
        with self.assertRaises(ClientDataOversize):
            assertion.check_bounds()

    def test_tampered_client_data(self):
        assertion = assert_message(self.private_key, self.message)
        data = json.loads(assertion.client_data_json)
        data["origin"] = "https://evil.example"
        assertion.client_data_json = json.dumps(data).encode()
        self.assertEqual(
            assertion.challenge(), hashlib.sha3_256(self.message).digest()
        )
        self.assertFalse(assertion.verify(self.message, self.public_key))

    def test_verify_arbitrary_message(self):
        challenge = b"\x42" * 32
        client_data_json = CollectedClientData(
            "webauthn.get", base64url_encode(challenge), "http://localhost"
        ).to_json()
        authenticator_data = b"\x11" * 37
        signature = self.private_key.sign_sha256(
            authenticator_data + hashlib.sha256(client_data_json).digest()
        )
        assertion = PartialAuthenticatorAssertionResponse(
            signature, authenticator_data, client_data_json
        )
        self.assertTrue(assertion.verify_arbitrary_message(challenge, self.public_key))
        self.assertFalse(assertion.verify(challenge, self.public_key))

    def test_serialization(self):
        assertion = assert_message(self.private_key, self.message)
        ser = Serializer()
        assertion.serialize(ser)
        out = ser.output()
        self.assertEqual(out[0], 0)
        der = Deserializer(out)
        self.assertEqual(PartialAuthenticatorAssertionResponse.deserialize(der), assertion)
        self.assertEqual(der.remaining(), 0)

    def test_deserialize_rejects_short_authenticator_data(self):
        ser = Serializer()
        AssertionSignature(self.private_key.sign(b"x")).serialize(ser)
        ser.to_bytes(b"\x00" * 36)
        ser.to_bytes(b"{}")
        with self.assertRaises(LengthOutOfBounds):
            PartialAuthenticatorAssertionResponse.deserialize(Deserializer(ser.output()))

    def test_unknown_assertion_variant(self):
        ser = Serializer()
        ser.uleb128(1)
        with self.assertRaises(InvalidVariant):
            AssertionSignature.deserialize(Deserializer(ser.output()))


if __name__ == "__main__":
    unittest.main()
