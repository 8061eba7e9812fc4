# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Assembling raw transactions and signing them.

:class:`TransactionBuilder` fills in the fields of a raw transaction, taking
gas settings and the expiration window from a :class:`TransactionConfig`
unless they are set explicitly. Depending on whether secondary signers or a
fee payer are set, ``build()`` returns a ``RawTransaction``, a
``MultiAgentRawTransaction`` or a ``FeePayerRawTransaction``.

The ``sign_*`` helpers collect the signatures of every party and wrap them in
the matching transaction authenticator.

Examples:
    A coin transfer::

        raw_transaction = (
            TransactionBuilder(TransactionConfig(chain_id=4))
            .sender(alice.address())
            .sequence_number(0)
            .entry_function(
                "0x1::coin::transfer",
                ["0x1::aptos_coin::AptosCoin"],
                [
                    TransactionArgument(bob.address(), Serializer.struct),
                    TransactionArgument(1000, Serializer.u64),
                ],
            )
            .build()
        )
        signed_transaction = sign_transaction(alice, raw_transaction)
"""

from __future__ import annotations

import time
import unittest
from dataclasses import dataclass
from typing import List, Optional, Union

from typing_extensions import Protocol

from . import ed25519, secp256k1_ecdsa
from .account_address import AccountAddress
from .authenticator import (
    AccountAuthenticator,
    Authenticator,
    FeePayerAuthenticator,
    MultiAgentAuthenticator,
)
from .bcs import MAX_U8, MAX_U64, Serializer
from .transactions import (
    EntryFunction,
    FeePayerRawTransaction,
    ModuleId,
    MultiAgentRawTransaction,
    RawTransaction,
    RawTransactionInternal,
    SignedTransaction,
    TransactionArgument,
    TransactionPayload,
)
from .type_tag import TypeTag


@dataclass
class TransactionConfig:
    """Defaults for the fields of a transaction that are not set explicitly.

    Attributes:
        expiration_ttl: Seconds from build time until the transaction expires
        gas_unit_price: Price per unit of gas in octas
        max_gas_amount: Maximum gas units the transaction may use
        chain_id: Chain the transaction is built for, required at build time
    """

    expiration_ttl: int = 600
    gas_unit_price: int = 100
    max_gas_amount: int = 100_000
    chain_id: Optional[int] = None


class TransactionSigner(Protocol):
    """Anything with an address that signs transactions, such as an Account."""

    def address(self) -> AccountAddress:
        ...

    def sign_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        ...


class TransactionBuilder:
    """Collects the fields of a transaction; ``build()`` validates and assembles it."""

    config: TransactionConfig

    def __init__(self, config: Optional[TransactionConfig] = None):
        self.config = config if config is not None else TransactionConfig()
        self._sender: Optional[AccountAddress] = None
        self._sequence_number: Optional[int] = None
        self._payload: Optional[TransactionPayload] = None
        self._max_gas_amount: Optional[int] = None
        self._gas_unit_price: Optional[int] = None
        self._expiration_timestamp_secs: Optional[int] = None
        self._chain_id: Optional[int] = None
        self._secondary_signers: List[AccountAddress] = []
        self._has_fee_payer = False
        self._fee_payer: Optional[AccountAddress] = None

    def sender(self, sender: AccountAddress) -> TransactionBuilder:
        self._sender = sender
        return self

    def sequence_number(self, sequence_number: int) -> TransactionBuilder:
        self._sequence_number = sequence_number
        return self

    def payload(self, payload: TransactionPayload) -> TransactionBuilder:
        self._payload = payload
        return self

    def entry_function(
        self,
        function: str,
        type_args: List[Union[TypeTag, str]],
        args: List[TransactionArgument],
    ) -> TransactionBuilder:
        """Call ``function``, written ``address::module::name``.

        Type arguments may be given as strings and are parsed.

        Raises:
            ValueError: If the function name or a type argument is malformed.
        """
        split = function.split("::")
        if len(split) != 3 or not all(split):
            raise ValueError(f"Invalid entry function: {function}")
        ty_args = [
            type_arg if isinstance(type_arg, TypeTag) else TypeTag.from_str(type_arg)
            for type_arg in type_args
        ]
        entry_function = EntryFunction(
            ModuleId(AccountAddress.from_str_relaxed(split[0]), split[1]),
            split[2],
            ty_args,
            [arg.encode() for arg in args],
        )
        return self.payload(TransactionPayload(entry_function))

    def max_gas_amount(self, max_gas_amount: int) -> TransactionBuilder:
        self._max_gas_amount = max_gas_amount
        return self

    def gas_unit_price(self, gas_unit_price: int) -> TransactionBuilder:
        self._gas_unit_price = gas_unit_price
        return self

    def expiration_timestamp_secs(self, expiration: int) -> TransactionBuilder:
        self._expiration_timestamp_secs = expiration
        return self

    def chain_id(self, chain_id: int) -> TransactionBuilder:
        self._chain_id = chain_id
        return self

    def secondary_signers(
        self, secondary_signers: List[AccountAddress]
    ) -> TransactionBuilder:
        self._secondary_signers = list(secondary_signers)
        return self

    def fee_payer(
        self, fee_payer: Optional[AccountAddress] = None
    ) -> TransactionBuilder:
        """Make the transaction sponsored. The address may be filled in later."""
        self._has_fee_payer = True
        self._fee_payer = fee_payer
        return self

    def validate(self):
        """Check that every required field is present and fits its encoding.

        Raises:
            ValueError: Naming the first missing or out of range field.
        """
        if self._sender is None:
            raise ValueError("Transaction sender is not set")
        if self._sequence_number is None:
            raise ValueError("Transaction sequence number is not set")
        if self._payload is None:
            raise ValueError("Transaction payload is not set")
        chain_id = self._resolved_chain_id()
        if chain_id is None:
            raise ValueError("Transaction chain id is not set")
        if not 0 <= chain_id <= MAX_U8:
            raise ValueError(f"Chain id {chain_id} does not fit in a u8")
        for name, value in [
            ("sequence number", self._sequence_number),
            ("max gas amount", self._resolved_max_gas_amount()),
            ("gas unit price", self._resolved_gas_unit_price()),
        ]:
            if not 0 <= value <= MAX_U64:
                raise ValueError(f"Transaction {name} {value} does not fit in a u64")
        if self._has_fee_payer and self._fee_payer in self._secondary_signers:
            raise ValueError("The fee payer cannot also be a secondary signer")

    def build(
        self,
    ) -> Union[RawTransaction, MultiAgentRawTransaction, FeePayerRawTransaction]:
        self.validate()
        expiration = self._expiration_timestamp_secs
        if expiration is None:
            expiration = int(time.time()) + self.config.expiration_ttl
        raw_transaction = RawTransaction(
            self._sender,  # type: ignore[arg-type]
            self._sequence_number,  # type: ignore[arg-type]
            self._payload,  # type: ignore[arg-type]
            self._resolved_max_gas_amount(),
            self._resolved_gas_unit_price(),
            expiration,
            self._resolved_chain_id(),  # type: ignore[arg-type]
        )
        if self._has_fee_payer:
            return FeePayerRawTransaction(
                raw_transaction, self._secondary_signers, self._fee_payer
            )
        if self._secondary_signers:
            return MultiAgentRawTransaction(raw_transaction, self._secondary_signers)
        return raw_transaction

    def _resolved_chain_id(self) -> Optional[int]:
        return self._chain_id if self._chain_id is not None else self.config.chain_id

    def _resolved_max_gas_amount(self) -> int:
        if self._max_gas_amount is not None:
            return self._max_gas_amount
        return self.config.max_gas_amount

    def _resolved_gas_unit_price(self) -> int:
        if self._gas_unit_price is not None:
            return self._gas_unit_price
        return self.config.gas_unit_price


def sign_transaction(
    sender: TransactionSigner, raw_transaction: RawTransaction
) -> SignedTransaction:
    return SignedTransaction(raw_transaction, sender.sign_transaction(raw_transaction))


def sign_multi_agent_transaction(
    sender: TransactionSigner,
    secondary_signers: List[TransactionSigner],
    raw_transaction: MultiAgentRawTransaction,
) -> SignedTransaction:
    """Have the sender and every secondary signer sign ``raw_transaction``.

    Raises:
        ValueError: If the signers do not match the transaction's secondary
            signer addresses, in order.
    """
    _check_secondary_signers(secondary_signers, raw_transaction.secondary_signers)
    authenticator = Authenticator(
        MultiAgentAuthenticator(
            sender.sign_transaction(raw_transaction),
            [
                (x.address(), x.sign_transaction(raw_transaction))
                for x in secondary_signers
            ],
        )
    )
    return SignedTransaction(raw_transaction.inner(), authenticator)


def sign_fee_payer_transaction(
    sender: TransactionSigner,
    secondary_signers: List[TransactionSigner],
    fee_payer: TransactionSigner,
    raw_transaction: FeePayerRawTransaction,
) -> SignedTransaction:
    """Have every party of a sponsored transaction sign it.

    An unresolved fee payer address is resolved to ``fee_payer``'s address
    before anyone signs, so all parties sign the same message. The parties
    sign a resolved copy; ``raw_transaction`` itself is left unchanged.

    Raises:
        ValueError: If the signers do not match the transaction's secondary
            signers, or the fee payer differs from the one already set.
    """
    _check_secondary_signers(secondary_signers, raw_transaction.secondary_signers)
    if raw_transaction.fee_payer is None:
        raw_transaction = FeePayerRawTransaction(
            raw_transaction.inner(),
            list(raw_transaction.secondary_signers),
            fee_payer.address(),
        )
    elif raw_transaction.fee_payer != fee_payer.address():
        raise ValueError(
            f"Fee payer {fee_payer.address()} does not match "
            f"{raw_transaction.fee_payer}"
        )

    authenticator = Authenticator(
        FeePayerAuthenticator(
            sender.sign_transaction(raw_transaction),
            [
                (x.address(), x.sign_transaction(raw_transaction))
                for x in secondary_signers
            ],
            (fee_payer.address(), fee_payer.sign_transaction(raw_transaction)),
        )
    )
    return SignedTransaction(raw_transaction.inner(), authenticator)


def _check_secondary_signers(
    signers: List[TransactionSigner], addresses: List[AccountAddress]
):
    signer_addresses = [x.address() for x in signers]
    if signer_addresses != addresses:
        raise ValueError(
            f"Secondary signers {signer_addresses} do not match "
            f"the transaction's {addresses}"
        )


class _KeySigner:
    def __init__(self, private_key):
        self.private_key = private_key

    def address(self) -> AccountAddress:
        return AccountAddress.from_key(self.private_key.public_key())

    def sign_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        return transaction.sign(self.private_key)


class Test(unittest.TestCase):
    def setUp(self):
        self.alice = _KeySigner(ed25519.PrivateKey.random())
        self.bob = _KeySigner(secp256k1_ecdsa.PrivateKey.random())
        self.carol = _KeySigner(ed25519.PrivateKey.random())

    def transfer(
        self, config: Optional[TransactionConfig] = None
    ) -> TransactionBuilder:
        return (
            TransactionBuilder(config or TransactionConfig(chain_id=4))
            .sender(self.alice.address())
            .sequence_number(0)
            .entry_function(
                "0x1::coin::transfer",
                ["0x1::aptos_coin::AptosCoin"],
                [
                    TransactionArgument(self.bob.address(), Serializer.struct),
                    TransactionArgument(1000, Serializer.u64),
                ],
            )
        )

    def test_defaults(self):
        before = int(time.time())
        raw_transaction = self.transfer().build()
        self.assertIsInstance(raw_transaction, RawTransaction)
        self.assertEqual(raw_transaction.max_gas_amount, 100_000)
        self.assertEqual(raw_transaction.gas_unit_price, 100)
        self.assertEqual(raw_transaction.chain_id, 4)
        self.assertGreaterEqual(
            raw_transaction.expiration_timestamps_secs, before + 600
        )
        self.assertEqual(
            raw_transaction.payload.value.ty_args,
            [TypeTag.from_str("0x1::aptos_coin::AptosCoin")],
        )

    def test_explicit_fields(self):
        raw_transaction = (
            self.transfer(TransactionConfig())
            .max_gas_amount(2000)
            .gas_unit_price(1)
            .expiration_timestamp_secs(1234567890)
            .chain_id(2)
            .build()
        )
        self.assertEqual(raw_transaction.max_gas_amount, 2000)
        self.assertEqual(raw_transaction.gas_unit_price, 1)
        self.assertEqual(raw_transaction.expiration_timestamps_secs, 1234567890)
        self.assertEqual(raw_transaction.chain_id, 2)

    def test_validate(self):
        with self.assertRaises(ValueError):
            TransactionBuilder().build()
        with self.assertRaises(ValueError):
            self.transfer(TransactionConfig()).build()
        with self.assertRaises(ValueError):
            self.transfer().chain_id(256).build()
        with self.assertRaises(ValueError):
            self.transfer().gas_unit_price(-1).build()
        with self.assertRaises(ValueError):
            self.transfer().entry_function("0x1::coin", [], [])

    def test_sign_transaction(self):
        raw_transaction = self.transfer().build()
        signed_transaction = sign_transaction(self.alice, raw_transaction)
        self.assertEqual(
            signed_transaction.authenticator.variant, Authenticator.ED25519
        )
        self.assertTrue(signed_transaction.verify())

    def test_multi_agent(self):
        raw_transaction = (
            self.transfer().secondary_signers([self.bob.address()]).build()
        )
        self.assertIsInstance(raw_transaction, MultiAgentRawTransaction)
        signed_transaction = sign_multi_agent_transaction(
            self.alice, [self.bob], raw_transaction
        )
        self.assertEqual(
            signed_transaction.authenticator.variant, Authenticator.MULTI_AGENT
        )
        self.assertEqual(signed_transaction.transaction, raw_transaction.inner())
        self.assertTrue(signed_transaction.verify())

        with self.assertRaises(ValueError):
            sign_multi_agent_transaction(self.alice, [self.carol], raw_transaction)

    def test_fee_payer(self):
        raw_transaction = self.transfer().fee_payer().build()
        self.assertIsInstance(raw_transaction, FeePayerRawTransaction)
        self.assertIsNone(raw_transaction.fee_payer)

        signed_transaction = sign_fee_payer_transaction(
            self.alice, [], self.carol, raw_transaction
        )
        self.assertIsNone(raw_transaction.fee_payer)
        self.assertEqual(
            signed_transaction.signed_message(),
            FeePayerRawTransaction(raw_transaction.inner(), [], self.carol.address()),
        )
        self.assertEqual(
            signed_transaction.authenticator.variant, Authenticator.FEE_PAYER
        )
        self.assertTrue(signed_transaction.verify())

        resolved = self.transfer().fee_payer(self.carol.address()).build()
        with self.assertRaises(ValueError):
            sign_fee_payer_transaction(self.alice, [], self.bob, resolved)

    def test_fee_payer_with_secondary_signer(self):
        raw_transaction = (
            self.transfer()
            .secondary_signers([self.bob.address()])
            .fee_payer(self.carol.address())
            .build()
        )
        signed_transaction = sign_fee_payer_transaction(
            self.alice, [self.bob], self.carol, raw_transaction
        )
        self.assertTrue(signed_transaction.verify())

        with self.assertRaises(ValueError):
            (
                self.transfer()
                .secondary_signers([self.carol.address()])
                .fee_payer(self.carol.address())
                .build()
            )


if __name__ == "__main__":
    unittest.main()
