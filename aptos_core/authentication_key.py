# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Authentication keys: the on-chain commitment to an account's public key.

``auth_key = sha3_256(key_bytes || scheme)``, where ``key_bytes`` is the
key's ``to_crypto_bytes()``:

- Ed25519: the 32-byte key, scheme 0x00
- MultiEd25519: the concatenated keys and the threshold byte, scheme 0x01
- SingleKey: the BCS of the ``AnyPublicKey``, tag included, scheme 0x02
- MultiKey: the BCS of the ``MultiKey``, scheme 0x03

A freshly created account's address equals its authentication key. After a
key rotation the two differ, and the address stays fixed.
"""

from __future__ import annotations

import unittest

from . import asymmetric_crypto, ed25519, keyless, secp256k1_ecdsa, secp256r1_ecdsa
from .account_address import AccountAddress, AuthKeyScheme
from .asymmetric_crypto_wrapper import AnyPublicKey, MultiKey
from .hashing import sha3_256


class AuthenticationKey:
    LENGTH: int = 32

    key: bytes

    def __init__(self, key: bytes):
        if len(key) != AuthenticationKey.LENGTH:
            raise asymmetric_crypto.InvalidKeyLength(
                "authentication key", len(key), AuthenticationKey.LENGTH
            )
        self.key = key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthenticationKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return f"0x{self.key.hex()}"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def from_bytes_and_scheme(data: bytes, scheme: bytes) -> AuthenticationKey:
        return AuthenticationKey(sha3_256(data + scheme))

    @staticmethod
    def from_public_key(key: asymmetric_crypto.PublicKey) -> AuthenticationKey:
        """Compute the authentication key of ``key``.

        secp256k1, secp256r1 and keyless keys only exist on chain as SingleKey
        accounts, so they are wrapped in an ``AnyPublicKey`` first.

        Raises:
            TypeError: If ``key`` is not a key type an account can hold.
        """
        if isinstance(
            key,
            (
                secp256k1_ecdsa.PublicKey,
                secp256r1_ecdsa.PublicKey,
                keyless.KeylessPublicKey,
                keyless.FederatedKeylessPublicKey,
            ),
        ):
            key = AnyPublicKey(key)

        if isinstance(key, ed25519.PublicKey):
            scheme = AuthKeyScheme.Ed25519
        elif isinstance(key, ed25519.MultiPublicKey):
            scheme = AuthKeyScheme.MultiEd25519
        elif isinstance(key, AnyPublicKey):
            scheme = AuthKeyScheme.SingleKey
        elif isinstance(key, MultiKey):
            scheme = AuthKeyScheme.MultiKey
        else:
            raise TypeError(f"Unsupported public key type: {type(key).__name__}")

        return AuthenticationKey.from_bytes_and_scheme(key.to_crypto_bytes(), scheme)

    def account_address(self) -> AccountAddress:
        return AccountAddress(self.key)


class Test(unittest.TestCase):
    def test_ed25519(self):
        public_key = ed25519.PublicKey.from_str(
            "0xde19e5d1880cac87d57484ce9ed2e84cf0f9599f12e7cc3a52e4e7657a763f2c"
        )
        auth_key = AuthenticationKey.from_public_key(public_key)
        self.assertEqual(
            str(auth_key),
            "0x978c213990c4833df71548df7ce49d54c759d6b6d932de22b24d56060b7af2aa",
        )
        self.assertEqual(
            auth_key.account_address(), AccountAddress.from_key(public_key)
        )

    def test_secp256k1_single_key(self):
        public_key = secp256k1_ecdsa.PublicKey.from_str(
            "0x04acdd16651b839c24665b7e2033b55225f384554949fef46c397b5275f37f6e"
            "e95554d70fb5d9f93c5831ebf695c7206e7477ce708f03ae9bb2862dc6c9e033ea"
        )
        wrapped = AnyPublicKey(public_key)
        self.assertEqual(wrapped.to_crypto_bytes()[:3], b"\x01\x41\x04")
        expected = "0x5792c985bc96f436270bd2a3c692210b09c7febb8889345ceefdbae4bacfe498"
        self.assertEqual(str(AuthenticationKey.from_public_key(wrapped)), expected)
        self.assertEqual(str(AuthenticationKey.from_public_key(public_key)), expected)

    def test_scheme_separation(self):
        public_key = ed25519.PrivateKey.random().public_key()
        single = AuthenticationKey.from_public_key(public_key)
        wrapped = AuthenticationKey.from_public_key(AnyPublicKey(public_key))
        self.assertNotEqual(single, wrapped)
        self.assertEqual(
            single,
            AuthenticationKey.from_bytes_and_scheme(
                public_key.to_crypto_bytes(), AuthKeyScheme.Ed25519
            ),
        )

    def test_multi_key(self):
        keys = [
            ed25519.PrivateKey.random().public_key(),
            secp256k1_ecdsa.PrivateKey.random().public_key(),
        ]
        multi_key = MultiKey(keys, 1)
        self.assertEqual(
            AuthenticationKey.from_public_key(multi_key),
            AuthenticationKey(sha3_256(multi_key.to_crypto_bytes() + b"\x03")),
        )

    def test_unsupported_key(self):
        with self.assertRaises(TypeError):
            AuthenticationKey.from_public_key(object())  # type: ignore

    def test_length(self):
        with self.assertRaises(asymmetric_crypto.InvalidKeyLength):
            AuthenticationKey(b"\x00" * 31)


if __name__ == "__main__":
    unittest.main()
