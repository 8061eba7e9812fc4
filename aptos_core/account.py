# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signers: an account address paired with the key material that controls it.

``Account`` holds a single Ed25519, secp256k1 or secp256r1 private key.
``MultiKeyAccount`` holds some of the private keys of a k-of-n ``MultiKey``
and signs with all of them. Both satisfy the ``TransactionSigner`` protocol
used by :mod:`aptos_core.transaction_builder`.
"""

from __future__ import annotations

import json
import logging
import tempfile
import unittest
from typing import List, Tuple

from . import (
    asymmetric_crypto,
    asymmetric_crypto_wrapper,
    ed25519,
    secp256k1_ecdsa,
    secp256r1_ecdsa,
    webauthn,
)
from .account_address import AccountAddress
from .authenticator import AccountAuthenticator, MultiKeyAuthenticator
from .bcs import Serializer
from .transactions import RawTransactionInternal


class Account:
    """An account address and the single private key that controls it.

    The address is normally derived from the key. Accounts whose key has been
    rotated keep their original address, so both are stored.

    Examples:
        Create and sign::

            account = Account.generate()
            signature = account.sign(b"message")
            assert account.public_key().verify(b"message", signature)

        Persist and restore::

            account.store("account.json")
            same = Account.load("account.json")
    """

    account_address: AccountAddress
    private_key: asymmetric_crypto.PrivateKey

    def __init__(
        self, account_address: AccountAddress, private_key: asymmetric_crypto.PrivateKey
    ):
        self.account_address = account_address
        self.private_key = private_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.account_address == other.account_address
            and self.private_key == other.private_key
        )

    def __str__(self) -> str:
        return f"Account({self.account_address})"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def generate() -> Account:
        """Create an account with a fresh random Ed25519 key."""
        private_key = ed25519.PrivateKey.random()
        account_address = AccountAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    @staticmethod
    def generate_secp256k1_ecdsa() -> Account:
        """Create a SingleKey account with a fresh random secp256k1 key."""
        private_key = secp256k1_ecdsa.PrivateKey.random()
        public_key = asymmetric_crypto_wrapper.AnyPublicKey(private_key.public_key())
        account_address = AccountAddress.from_key(public_key)
        return Account(account_address, private_key)

    @staticmethod
    def generate_secp256r1_ecdsa() -> Account:
        """Create a SingleKey account with a fresh random secp256r1 key.

        Transactions from this account are signed as WebAuthn assertions.
        """
        private_key = secp256r1_ecdsa.PrivateKey.random()
        public_key = asymmetric_crypto_wrapper.AnyPublicKey(private_key.public_key())
        account_address = AccountAddress.from_key(public_key)
        return Account(account_address, private_key)

    @staticmethod
    def load_key(key: str) -> Account:
        """Load an account from a private key string.

        AIP-80 strings select their scheme from the prefix. Anything else is
        read as a legacy Ed25519 hex key, which logs a warning.

        Args:
            key: ``"secp256k1-priv-0x..."``, ``"ed25519-priv-0x..."`` or hex.

        Raises:
            ValueError: If the key is not valid hex.
        """
        private_key: asymmetric_crypto.PrivateKey
        prefixes = asymmetric_crypto.PrivateKey.AIP80_PREFIXES
        if key.startswith(prefixes[asymmetric_crypto.PrivateKeyVariant.Secp256k1]):
            private_key = secp256k1_ecdsa.PrivateKey.from_str(key)
        elif key.startswith(prefixes[asymmetric_crypto.PrivateKeyVariant.Secp256r1]):
            private_key = secp256r1_ecdsa.PrivateKey.from_str(key)
        else:
            private_key = ed25519.PrivateKey.from_str(key)
        account_address = AccountAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    @staticmethod
    def load(path: str) -> Account:
        """Load an account from a JSON file written by :meth:`store`.

        The file holds ``account_address`` and ``private_key``. The address is
        taken from the file, not derived, so rotated accounts load correctly.
        """
        with open(path) as file:
            data = json.load(file)
        account = Account.load_key(data["private_key"])
        account.account_address = AccountAddress.from_str_relaxed(
            data["account_address"]
        )
        return account

    def store(self, path: str):
        """Write the address and the AIP-80 form of the private key to ``path``."""
        data = {
            "account_address": str(self.account_address),
            "private_key": self.private_key.aip80(),
        }
        with open(path, "w") as file:
            json.dump(data, file)

    def address(self) -> AccountAddress:
        return self.account_address

    def auth_key(self) -> str:
        """The authentication key of the current private key, as a hex string.

        It equals the address until the account's key is rotated.
        """
        return str(AccountAddress.from_key(self.private_key.public_key()))

    def sign(self, data: bytes) -> asymmetric_crypto.Signature:
        return self.private_key.sign(data)

    def sign_simulated_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        """
        Build an authenticator for simulating ``transaction``.

        :param transaction: The transaction to simulate
        :return: An AccountAuthenticator whose signature is not valid
        """
        logging.debug("Simulating transaction signature for %s", self.account_address)
        return transaction.sign_simulated(self.private_key.public_key())

    def sign_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        """
        Sign a transaction with this account's private key.

        :param transaction: The transaction to sign
        :return: An AccountAuthenticator containing the signature
        """
        return transaction.sign(self.private_key)

    def public_key(self) -> asymmetric_crypto.PublicKey:
        return self.private_key.public_key()


class MultiKeyAccount:
    """A k-of-n ``MultiKey`` account and the private keys held locally.

    Every held key signs. Signing produces a ``MultiKeySignature`` whose
    bitmap marks the held keys' positions in the ``MultiKey``.
    """

    account_address: AccountAddress
    multi_key: asymmetric_crypto_wrapper.MultiKey
    signers: List[Tuple[int, asymmetric_crypto.PrivateKey]]

    def __init__(
        self,
        multi_key: asymmetric_crypto_wrapper.MultiKey,
        private_keys: List[asymmetric_crypto.PrivateKey],
        account_address: AccountAddress | None = None,
    ):
        """
        :param multi_key: The account's public key set and threshold
        :param private_keys: Private keys for some of the keys in ``multi_key``
        :param account_address: The address, derived from ``multi_key`` if not given
        :raises ValueError: If a key is not part of ``multi_key`` or fewer keys
            than the threshold are held
        """
        signers = []
        for private_key in private_keys:
            try:
                index = multi_key.index_of(private_key.public_key())
            except ValueError:
                raise ValueError(
                    f"{private_key.public_key()} is not a key of {multi_key}"
                )
            signers.append((index, private_key))
        if len(signers) < multi_key.threshold:
            raise ValueError(
                f"Need {multi_key.threshold} signing keys, got {len(signers)}"
            )

        self.multi_key = multi_key
        self.signers = sorted(signers, key=lambda signer: signer[0])
        if account_address is None:
            account_address = AccountAddress.from_key(multi_key)
        self.account_address = account_address

    def __str__(self) -> str:
        return f"MultiKeyAccount({self.account_address}, {self.multi_key})"

    def address(self) -> AccountAddress:
        return self.account_address

    def auth_key(self) -> str:
        return str(AccountAddress.from_key(self.multi_key))

    def public_key(self) -> asymmetric_crypto_wrapper.MultiKey:
        return self.multi_key

    def sign(self, data: bytes) -> asymmetric_crypto_wrapper.MultiKeySignature:
        signatures: List[Tuple[int, asymmetric_crypto.Signature]] = []
        for index, private_key in self.signers:
            signature: asymmetric_crypto.Signature
            if isinstance(private_key, secp256r1_ecdsa.PrivateKey):
                signature = webauthn.assert_message(private_key, data)
            else:
                signature = private_key.sign(data)
            signatures.append((index, signature))
        return asymmetric_crypto_wrapper.MultiKeySignature.from_indexed(signatures)

    def sign_simulated_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        logging.debug("Simulating transaction signature for %s", self.account_address)
        return transaction.sign_simulated(self.multi_key)

    def sign_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        signature = self.sign(transaction.keyed())
        return AccountAuthenticator(MultiKeyAuthenticator(self.multi_key, signature))


class RotationProofChallenge:
    """
    The message both the current and the new key sign to rotate an account's
    authentication key.

    It is the BCS of the Move struct ``0x1::account::RotationProofChallenge``
    preceded by the struct's type info.
    """

    type_info_account_address: AccountAddress = AccountAddress.from_str("0x1")
    type_info_module_name: str = "account"
    type_info_struct_name: str = "RotationProofChallenge"
    sequence_number: int
    originator: AccountAddress
    current_auth_key: AccountAddress
    new_public_key: asymmetric_crypto.PublicKey

    def __init__(
        self,
        sequence_number: int,
        originator: AccountAddress,
        current_auth_key: AccountAddress,
        new_public_key: asymmetric_crypto.PublicKey,
    ):
        self.sequence_number = sequence_number
        self.originator = originator
        self.current_auth_key = current_auth_key
        self.new_public_key = new_public_key

    def serialize(self, serializer: Serializer):
        self.type_info_account_address.serialize(serializer)
        serializer.str(self.type_info_module_name)
        serializer.str(self.type_info_struct_name)
        serializer.u64(self.sequence_number)
        self.originator.serialize(serializer)
        self.current_auth_key.serialize(serializer)
        serializer.struct(self.new_public_key)


class Test(unittest.TestCase):
    def transaction(self, sender: AccountAddress):
        from .transactions import (
            EntryFunction,
            RawTransaction,
            TransactionArgument,
            TransactionPayload,
        )

        payload = TransactionPayload(
            EntryFunction.natural(
                "0x1::aptos_account",
                "transfer",
                [],
                [
                    TransactionArgument(
                        AccountAddress.from_str("0x2"), Serializer.struct
                    ),
                    TransactionArgument(500, Serializer.u64),
                ],
            )
        )
        return RawTransaction(sender, 3, payload, 2000, 100, 1_700_000_000, 4)

    def test_load_and_store(self):
        (file, path) = tempfile.mkstemp()
        start = Account.generate()
        start.store(path)
        load = Account.load(path)

        self.assertEqual(start, load)
        # Auth key and Account address should be the same at start
        self.assertEqual(str(start.address()), start.auth_key())

    def test_load_and_store_secp256k1(self):
        (file, path) = tempfile.mkstemp()
        start = Account.generate_secp256k1_ecdsa()
        start.store(path)
        with open(path) as stored:
            self.assertTrue(json.load(stored)["private_key"].startswith("secp256k1-"))
        self.assertEqual(start, Account.load(path))

    def test_stored_address_survives_rotation(self):
        (file, path) = tempfile.mkstemp()
        rotated = Account(
            AccountAddress.from_str("0x1"), ed25519.PrivateKey.random()
        )
        rotated.store(path)
        load = Account.load(path)
        self.assertEqual(load.address(), AccountAddress.from_str("0x1"))
        self.assertNotEqual(str(load.address()), load.auth_key())

    def test_key(self):
        message = b"test message"
        account = Account.generate()
        signature = account.sign(message)
        self.assertTrue(account.public_key().verify(message, signature))

    def test_load_key_schemes(self):
        secp256k1 = secp256k1_ecdsa.PrivateKey.random()
        account = Account.load_key(secp256k1.aip80())
        self.assertEqual(account.private_key, secp256k1)

        ed25519_key = ed25519.PrivateKey.random()
        self.assertEqual(Account.load_key(ed25519_key.aip80()).private_key, ed25519_key)

    def test_private_key_not_leaked(self):
        account = Account.generate()
        self.assertNotIn(account.private_key.hex()[2:], str(account))
        with self.assertRaises(TypeError):
            json.dumps(account.private_key)

    def test_sign_transaction(self):
        from .transactions import SignedTransaction

        for account in [
            Account.generate(),
            Account.generate_secp256k1_ecdsa(),
            Account.generate_secp256r1_ecdsa(),
        ]:
            raw_transaction = self.transaction(account.address())
            authenticator = account.sign_transaction(raw_transaction)
            signed_transaction = SignedTransaction(raw_transaction, authenticator)
            self.assertTrue(signed_transaction.verify())

    def test_sign_simulated_transaction(self):
        from .transactions import SignedTransaction

        account = Account.generate()
        raw_transaction = self.transaction(account.address())
        authenticator = account.sign_simulated_transaction(raw_transaction)
        self.assertEqual(
            authenticator.authenticator.signature, ed25519.Signature(b"\x00" * 64)
        )
        self.assertFalse(SignedTransaction(raw_transaction, authenticator).verify())

    def test_multi_key_account(self):
        from .transactions import SignedTransaction

        keys = [
            ed25519.PrivateKey.random(),
            secp256k1_ecdsa.PrivateKey.random(),
            secp256r1_ecdsa.PrivateKey.random(),
        ]
        multi_key = asymmetric_crypto_wrapper.MultiKey(
            [key.public_key() for key in keys], 2
        )
        account = MultiKeyAccount(multi_key, [keys[2], keys[0]])
        self.assertEqual(account.address(), AccountAddress.from_key(multi_key))

        raw_transaction = self.transaction(account.address())
        authenticator = account.sign_transaction(raw_transaction)
        signature = authenticator.authenticator.signature
        self.assertEqual(signature.signer_indices(), [0, 2])
        self.assertTrue(SignedTransaction(raw_transaction, authenticator).verify())

    def test_multi_key_account_rejects_foreign_key(self):
        keys = [ed25519.PrivateKey.random(), ed25519.PrivateKey.random()]
        multi_key = asymmetric_crypto_wrapper.MultiKey(
            [key.public_key() for key in keys], 1
        )
        with self.assertRaises(ValueError):
            MultiKeyAccount(multi_key, [ed25519.PrivateKey.random()])
        with self.assertRaises(ValueError):
            MultiKeyAccount(multi_key, [])

    def test_rotation_proof_challenge(self):
        # Create originating account from private key.
        originating_account = Account.load_key(
            "005120c5882b0d492b3d2dc60a8a4510ec2051825413878453137305ba2d644b"
        )
        # Create target account from private key.
        target_account = Account.load_key(
            "19d409c191b1787d5b832d780316b83f6ee219677fafbd4c0f69fee12fdcdcee"
        )
        rotation_proof_challenge = RotationProofChallenge(
            sequence_number=1234,
            originator=originating_account.address(),
            current_auth_key=originating_account.address(),
            new_public_key=target_account.public_key(),
        )
        serializer = Serializer()
        rotation_proof_challenge.serialize(serializer)
        rotation_proof_challenge_bcs = serializer.output().hex()
        expected_bytes = (
            "0000000000000000000000000000000000000000000000000000000000000001"
            "076163636f756e7416526f746174696f6e50726f6f664368616c6c656e6765d2"
            "0400000000000015b67a673979c7c5dfc8d9c9f94d02da35062a19dd9d218087"
            "bd9076589219c615b67a673979c7c5dfc8d9c9f94d02da35062a19dd9d218087"
            "bd9076589219c620a1f942a3c46e2a4cd9552c0f95d529f8e3b60bcd44408637"
            "9ace35e4458b9f22"
        )
        self.assertEqual(rotation_proof_challenge_bcs, expected_bytes)


if __name__ == "__main__":
    unittest.main()
