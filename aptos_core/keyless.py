# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Keyless (OpenID Connect) account keys and signatures.

A keyless account is controlled by an OIDC identity rather than a long-lived
private key. Its public key commits to the identity provider (``iss``) and to
an identity commitment (``idc``) hiding the application and user ids. A
transaction is signed with a short-lived ephemeral key, and the signature
carries a certificate binding that ephemeral key to the identity: either a
Groth16 zero-knowledge proof or the raw OpenID signature.

Only the wire formats live here. Checking a keyless signature needs the
provider's JWKs and the on-chain keyless configuration, so it happens on
chain; ``verify`` on the public keys in this module always returns False.

Layout::

    KeylessPublicKey          = str iss || bytes idc (32)
    FederatedKeylessPublicKey = AccountAddress jwk_address || KeylessPublicKey
    KeylessSignature          = EphemeralCertificate || str jwt_header_json
                                || u64 exp_date_secs || EphemeralPublicKey
                                || EphemeralSignature
"""

from __future__ import annotations

import unittest
from typing import Optional

from . import asymmetric_crypto, bcs, ed25519, secp256r1_ecdsa, webauthn
from .account_address import AccountAddress
from .bcs import Deserializer, InvalidVariant, Serializer

ID_COMMITMENT_LENGTH = 32
PEPPER_LENGTH = 31
G1_LENGTH = 32
G2_LENGTH = 64


def _read_length_checked(deserializer: Deserializer, kind: str, length: int) -> bytes:
    value = deserializer.to_bytes()
    if len(value) != length:
        raise asymmetric_crypto.InvalidKeyLength(kind, len(value), length)
    return value


class KeylessPublicKey(asymmetric_crypto.PublicKey):
    iss: str
    idc: bytes

    def __init__(self, iss: str, idc: bytes):
        if len(idc) != ID_COMMITMENT_LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "keyless identity commitment", len(idc), ID_COMMITMENT_LENGTH
            )
        self.iss = iss
        self.idc = idc

    def __eq__(self, other: object):
        if not isinstance(other, KeylessPublicKey):
            return NotImplemented
        return self.iss == other.iss and self.idc == other.idc

    def __str__(self) -> str:
        return f"Keyless[{self.iss}, 0x{self.idc.hex()}]"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        return False

    def to_crypto_bytes(self) -> bytes:
        return bcs.encode(self)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> KeylessPublicKey:
        iss = deserializer.str()
        idc = _read_length_checked(
            deserializer, "keyless identity commitment", ID_COMMITMENT_LENGTH
        )
        return KeylessPublicKey(iss, idc)

    def serialize(self, serializer: Serializer):
        serializer.str(self.iss)
        serializer.to_bytes(self.idc)


class FederatedKeylessPublicKey(asymmetric_crypto.PublicKey):
    """A keyless key whose JWKs are published by a contract at ``jwk_address``."""

    jwk_address: AccountAddress
    public_key: KeylessPublicKey

    def __init__(self, jwk_address: AccountAddress, public_key: KeylessPublicKey):
        self.jwk_address = jwk_address
        self.public_key = public_key

    def __eq__(self, other: object):
        if not isinstance(other, FederatedKeylessPublicKey):
            return NotImplemented
        return (
            self.jwk_address == other.jwk_address
            and self.public_key == other.public_key
        )

    def __str__(self) -> str:
        return f"FederatedKeyless[{self.jwk_address}, {self.public_key}]"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        return False

    def to_crypto_bytes(self) -> bytes:
        return bcs.encode(self)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> FederatedKeylessPublicKey:
        jwk_address = deserializer.struct(AccountAddress)
        public_key = deserializer.struct(KeylessPublicKey)
        return FederatedKeylessPublicKey(jwk_address, public_key)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.jwk_address)
        serializer.struct(self.public_key)


class EphemeralPublicKey:
    ED25519: int = 0
    SECP256R1: int = 1

    variant: int
    public_key: asymmetric_crypto.PublicKey

    def __init__(self, public_key: asymmetric_crypto.PublicKey):
        if isinstance(public_key, ed25519.PublicKey):
            self.variant = EphemeralPublicKey.ED25519
        elif isinstance(public_key, secp256r1_ecdsa.PublicKey):
            self.variant = EphemeralPublicKey.SECP256R1
        else:
            raise NotImplementedError()
        self.public_key = public_key

    def __eq__(self, other: object):
        if not isinstance(other, EphemeralPublicKey):
            return NotImplemented
        return self.variant == other.variant and self.public_key == other.public_key

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EphemeralPublicKey:
        variant = deserializer.uleb128()
        if variant == EphemeralPublicKey.ED25519:
            public_key: asymmetric_crypto.PublicKey = deserializer.struct(
                ed25519.PublicKey
            )
        elif variant == EphemeralPublicKey.SECP256R1:
            public_key = deserializer.struct(secp256r1_ecdsa.PublicKey)
        else:
            raise deserializer.fail(InvalidVariant("EphemeralPublicKey", variant))
        return EphemeralPublicKey(public_key)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.public_key)


class EphemeralSignature:
    ED25519: int = 0
    WEBAUTHN: int = 1

    variant: int
    signature: asymmetric_crypto.Signature

    def __init__(self, signature: asymmetric_crypto.Signature):
        if isinstance(signature, ed25519.Signature):
            self.variant = EphemeralSignature.ED25519
        elif isinstance(signature, webauthn.PartialAuthenticatorAssertionResponse):
            self.variant = EphemeralSignature.WEBAUTHN
        else:
            raise NotImplementedError()
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, EphemeralSignature):
            return NotImplemented
        return self.variant == other.variant and self.signature == other.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EphemeralSignature:
        variant = deserializer.uleb128()
        if variant == EphemeralSignature.ED25519:
            signature: asymmetric_crypto.Signature = deserializer.struct(
                ed25519.Signature
            )
        elif variant == EphemeralSignature.WEBAUTHN:
            signature = deserializer.struct(
                webauthn.PartialAuthenticatorAssertionResponse
            )
        else:
            raise deserializer.fail(InvalidVariant("EphemeralSignature", variant))
        return EphemeralSignature(signature)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.signature)


class Groth16Proof:
    """A compressed Groth16 proof: G1 ``a``, G2 ``b``, G1 ``c``."""

    a: bytes
    b: bytes
    c: bytes

    def __init__(self, a: bytes, b: bytes, c: bytes):
        for name, value, length in (
            ("a", a, G1_LENGTH),
            ("b", b, G2_LENGTH),
            ("c", c, G1_LENGTH),
        ):
            if len(value) != length:
                raise asymmetric_crypto.InvalidKeyLength(
                    f"groth16 proof {name}", len(value), length
                )
        self.a = a
        self.b = b
        self.c = c

    def __eq__(self, other: object):
        if not isinstance(other, Groth16Proof):
            return NotImplemented
        return (self.a, self.b, self.c) == (other.a, other.b, other.c)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Groth16Proof:
        a = deserializer.fixed_bytes(G1_LENGTH)
        b = deserializer.fixed_bytes(G2_LENGTH)
        c = deserializer.fixed_bytes(G1_LENGTH)
        return Groth16Proof(a, b, c)

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.a)
        serializer.fixed_bytes(self.b)
        serializer.fixed_bytes(self.c)


class ZeroKnowledgeSig:
    """A zero-knowledge certificate for the ephemeral key.

    Attributes:
        proof: The Groth16 proof (the only proof system, wire variant 0).
        exp_horizon_secs: How far past the JWT's ``iat`` the ephemeral key
            may remain valid.
        extra_field: An optional JWT field revealed by the proof.
        override_aud_val: The original ``aud`` when recovering an account
            through a different application.
        training_wheels_signature: Optional signature by the prover service.
    """

    GROTH16: int = 0

    proof: Groth16Proof
    exp_horizon_secs: int
    extra_field: Optional[str]
    override_aud_val: Optional[str]
    training_wheels_signature: Optional[EphemeralSignature]

    def __init__(
        self,
        proof: Groth16Proof,
        exp_horizon_secs: int,
        extra_field: Optional[str] = None,
        override_aud_val: Optional[str] = None,
        training_wheels_signature: Optional[EphemeralSignature] = None,
    ):
        self.proof = proof
        self.exp_horizon_secs = exp_horizon_secs
        self.extra_field = extra_field
        self.override_aud_val = override_aud_val
        self.training_wheels_signature = training_wheels_signature

    def __eq__(self, other: object):
        if not isinstance(other, ZeroKnowledgeSig):
            return NotImplemented
        return (
            self.proof == other.proof
            and self.exp_horizon_secs == other.exp_horizon_secs
            and self.extra_field == other.extra_field
            and self.override_aud_val == other.override_aud_val
            and self.training_wheels_signature == other.training_wheels_signature
        )

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ZeroKnowledgeSig:
        variant = deserializer.uleb128()
        if variant != ZeroKnowledgeSig.GROTH16:
            raise deserializer.fail(InvalidVariant("ZKP", variant))
        proof = deserializer.struct(Groth16Proof)
        exp_horizon_secs = deserializer.u64()
        extra_field = deserializer.option(Deserializer.str)
        override_aud_val = deserializer.option(Deserializer.str)
        training_wheels_signature = deserializer.option(EphemeralSignature.deserialize)
        return ZeroKnowledgeSig(
            proof,
            exp_horizon_secs,
            extra_field,
            override_aud_val,
            training_wheels_signature,
        )

    def serialize(self, serializer: Serializer):
        serializer.uleb128(ZeroKnowledgeSig.GROTH16)
        serializer.struct(self.proof)
        serializer.u64(self.exp_horizon_secs)
        serializer.option(self.extra_field, Serializer.str)
        serializer.option(self.override_aud_val, Serializer.str)
        serializer.option(self.training_wheels_signature, Serializer.struct)


class OpenIdSig:
    """A certificate made of the OIDC provider's signature over the JWT itself."""

    jwt_sig: bytes
    jwt_payload_json: str
    uid_key: str
    epk_blinder: bytes
    pepper: bytes
    idc_aud_val: Optional[str]

    def __init__(
        self,
        jwt_sig: bytes,
        jwt_payload_json: str,
        uid_key: str,
        epk_blinder: bytes,
        pepper: bytes,
        idc_aud_val: Optional[str] = None,
    ):
        if len(pepper) != PEPPER_LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "keyless pepper", len(pepper), PEPPER_LENGTH
            )
        self.jwt_sig = jwt_sig
        self.jwt_payload_json = jwt_payload_json
        self.uid_key = uid_key
        self.epk_blinder = epk_blinder
        self.pepper = pepper
        self.idc_aud_val = idc_aud_val

    def __eq__(self, other: object):
        if not isinstance(other, OpenIdSig):
            return NotImplemented
        return (
            self.jwt_sig == other.jwt_sig
            and self.jwt_payload_json == other.jwt_payload_json
            and self.uid_key == other.uid_key
            and self.epk_blinder == other.epk_blinder
            and self.pepper == other.pepper
            and self.idc_aud_val == other.idc_aud_val
        )

    @staticmethod
    def deserialize(deserializer: Deserializer) -> OpenIdSig:
        jwt_sig = deserializer.to_bytes()
        jwt_payload_json = deserializer.str()
        uid_key = deserializer.str()
        epk_blinder = deserializer.to_bytes()
        pepper = deserializer.fixed_bytes(PEPPER_LENGTH)
        idc_aud_val = deserializer.option(Deserializer.str)
        return OpenIdSig(
            jwt_sig, jwt_payload_json, uid_key, epk_blinder, pepper, idc_aud_val
        )

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.jwt_sig)
        serializer.str(self.jwt_payload_json)
        serializer.str(self.uid_key)
        serializer.to_bytes(self.epk_blinder)
        serializer.fixed_bytes(self.pepper)
        serializer.option(self.idc_aud_val, Serializer.str)


class EphemeralCertificate:
    ZERO_KNOWLEDGE: int = 0
    OPEN_ID: int = 1

    variant: int
    certificate: ZeroKnowledgeSig | OpenIdSig

    def __init__(self, certificate: ZeroKnowledgeSig | OpenIdSig):
        if isinstance(certificate, ZeroKnowledgeSig):
            self.variant = EphemeralCertificate.ZERO_KNOWLEDGE
        elif isinstance(certificate, OpenIdSig):
            self.variant = EphemeralCertificate.OPEN_ID
        else:
            raise NotImplementedError()
        self.certificate = certificate

    def __eq__(self, other: object):
        if not isinstance(other, EphemeralCertificate):
            return NotImplemented
        return self.variant == other.variant and self.certificate == other.certificate

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EphemeralCertificate:
        variant = deserializer.uleb128()
        if variant == EphemeralCertificate.ZERO_KNOWLEDGE:
            certificate: ZeroKnowledgeSig | OpenIdSig = deserializer.struct(
                ZeroKnowledgeSig
            )
        elif variant == EphemeralCertificate.OPEN_ID:
            certificate = deserializer.struct(OpenIdSig)
        else:
            raise deserializer.fail(InvalidVariant("EphemeralCertificate", variant))
        return EphemeralCertificate(certificate)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.certificate)


class KeylessSignature(asymmetric_crypto.Signature):
    certificate: EphemeralCertificate
    jwt_header_json: str
    exp_date_secs: int
    ephemeral_public_key: EphemeralPublicKey
    ephemeral_signature: EphemeralSignature

    def __init__(
        self,
        certificate: EphemeralCertificate,
        jwt_header_json: str,
        exp_date_secs: int,
        ephemeral_public_key: EphemeralPublicKey,
        ephemeral_signature: EphemeralSignature,
    ):
        self.certificate = certificate
        self.jwt_header_json = jwt_header_json
        self.exp_date_secs = exp_date_secs
        self.ephemeral_public_key = ephemeral_public_key
        self.ephemeral_signature = ephemeral_signature

    def __eq__(self, other: object):
        if not isinstance(other, KeylessSignature):
            return NotImplemented
        return (
            self.certificate == other.certificate
            and self.jwt_header_json == other.jwt_header_json
            and self.exp_date_secs == other.exp_date_secs
            and self.ephemeral_public_key == other.ephemeral_public_key
            and self.ephemeral_signature == other.ephemeral_signature
        )

    def __str__(self) -> str:
        return f"KeylessSignature[exp {self.exp_date_secs}]"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> KeylessSignature:
        certificate = deserializer.struct(EphemeralCertificate)
        jwt_header_json = deserializer.str()
        exp_date_secs = deserializer.u64()
        ephemeral_public_key = deserializer.struct(EphemeralPublicKey)
        ephemeral_signature = deserializer.struct(EphemeralSignature)
        return KeylessSignature(
            certificate,
            jwt_header_json,
            exp_date_secs,
            ephemeral_public_key,
            ephemeral_signature,
        )

    def serialize(self, serializer: Serializer):
        serializer.struct(self.certificate)
        serializer.str(self.jwt_header_json)
        serializer.u64(self.exp_date_secs)
        serializer.struct(self.ephemeral_public_key)
        serializer.struct(self.ephemeral_signature)


class Test(unittest.TestCase):
    def _signature(self, certificate) -> KeylessSignature:
        ephemeral = ed25519.PrivateKey.random()
        return KeylessSignature(
            EphemeralCertificate(certificate),
            '{"alg":"RS256","kid":"test","typ":"JWT"}',
            1_735_689_600,
            EphemeralPublicKey(ephemeral.public_key()),
            EphemeralSignature(ephemeral.sign(b"transaction")),
        )

    def test_public_key_layout(self):
        key = KeylessPublicKey("https://accounts.google.com", b"\x11" * 32)
        out = bcs.encode(key)
        self.assertEqual(out[0], len("https://accounts.google.com"))
        self.assertEqual(out[-33], 32)
        self.assertEqual(out[-32:], b"\x11" * 32)
        self.assertEqual(bcs.decode(out, KeylessPublicKey), key)
        self.assertFalse(key.verify(b"data", ed25519.Signature(b"\x00" * 64)))

    def test_identity_commitment_length(self):
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            KeylessPublicKey("https://accounts.google.com", b"\x11" * 31)

        ser = Serializer()
        ser.str("iss")
        ser.to_bytes(b"\x00" * 33)
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            KeylessPublicKey.deserialize(Deserializer(ser.output()))

    def test_federated_public_key(self):
        key = FederatedKeylessPublicKey(
            AccountAddress.from_str("0x1"),
            KeylessPublicKey("https://accounts.google.com", b"\x22" * 32),
        )
        out = key.to_crypto_bytes()
        self.assertEqual(out[:32], b"\x00" * 31 + b"\x01")
        self.assertEqual(bcs.decode(out, FederatedKeylessPublicKey), key)
        self.assertFalse(key.verify(b"data", ed25519.Signature(b"\x00" * 64)))

    def test_zero_knowledge_signature(self):
        proof = Groth16Proof(b"\x01" * 32, b"\x02" * 64, b"\x03" * 32)
        training_wheels = EphemeralSignature(
            ed25519.PrivateKey.random().sign(b"proof")
        )
        certificate = ZeroKnowledgeSig(
            proof, 10_000_000, None, "override-aud", training_wheels
        )
        signature = self._signature(certificate)
        out = bcs.encode(signature)
        # certificate variant, then groth16 variant
        self.assertEqual(out[:2], b"\x00\x00")
        self.assertEqual(bcs.decode(out, KeylessSignature), signature)

    def test_open_id_signature(self):
        certificate = OpenIdSig(
            b"\xAA" * 256,
            '{"iss":"https://accounts.google.com","aud":"app","sub":"user"}',
            "sub",
            b"\x05" * 31,
            b"\x06" * 31,
            "app",
        )
        signature = self._signature(certificate)
        out = bcs.encode(signature)
        self.assertEqual(out[0], EphemeralCertificate.OPEN_ID)
        self.assertEqual(bcs.decode(out, KeylessSignature), signature)

    def test_webauthn_ephemeral_signature(self):
        ephemeral = secp256r1_ecdsa.PrivateKey.random()
        signature = KeylessSignature(
            EphemeralCertificate(
                OpenIdSig(b"\x01", "{}", "sub", b"\x02" * 31, b"\x03" * 31)
            ),
            "{}",
            1,
            EphemeralPublicKey(ephemeral.public_key()),
            EphemeralSignature(webauthn.assert_message(ephemeral, b"transaction")),
        )
        self.assertEqual(signature.ephemeral_public_key.variant, 1)
        self.assertEqual(signature.ephemeral_signature.variant, 1)
        self.assertEqual(bcs.decode(bcs.encode(signature), KeylessSignature), signature)

    def test_unknown_variants(self):
        for kind in (EphemeralCertificate, EphemeralPublicKey, EphemeralSignature):
            with self.assertRaises(InvalidVariant):
                kind.deserialize(Deserializer(b"\x07"))


if __name__ == "__main__":
    unittest.main()
