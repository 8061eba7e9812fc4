# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Aptos transactions and their BCS encoding, signing messages and hashes.

A transaction moves through three shapes:

- ``RawTransaction``: what the sender wants executed, under which gas limits,
  until when and on which chain.
- ``MultiAgentRawTransaction`` / ``FeePayerRawTransaction``: a raw
  transaction plus the addresses of additional signers. Only their signing
  message differs; they are never submitted as such.
- ``SignedTransaction``: the inner ``RawTransaction`` followed by the
  transaction ``Authenticator``. Multi-agent and fee-payer data lives in the
  authenticator variant.

The message every signer signs is ``sha3_256(b"APTOS::<type>") || bcs(txn)``,
see :meth:`RawTransactionInternal.keyed`.
"""

from __future__ import annotations

import hashlib
import unittest
from typing import Any, Callable, List, Optional, Union, cast

from typing_extensions import Protocol

from . import (
    asymmetric_crypto,
    ed25519,
    hashing,
    secp256k1_ecdsa,
    secp256r1_ecdsa,
    webauthn,
)
from .account_address import AccountAddress
from .authenticator import (
    AccountAuthenticator,
    Authenticator,
    Ed25519Authenticator,
    FeePayerAuthenticator,
    MultiAgentAuthenticator,
    NoAccountAuthenticator,
    SingleKeyAuthenticator,
)
from .bcs import Deserializer, InvalidVariant, Serializer
from .type_tag import StructTag, TypeTag

USER_TRANSACTION: int = 0


class RawTransactionInternal(Protocol):
    """Behavior shared by everything a signer can sign."""

    def keyed(self) -> bytes:
        """The signing message: the domain prehash followed by the BCS bytes."""
        ser = Serializer()
        self.serialize(ser)
        prehash = bytearray(self.prehash())
        prehash.extend(ser.output())
        return bytes(prehash)

    def signing_message(self) -> bytes:
        return self.keyed()

    def prehash(self) -> bytes:
        ...

    def serialize(self, serializer: Serializer):
        ...

    def sign(self, key: asymmetric_crypto.PrivateKey) -> AccountAuthenticator:
        """Sign the signing message with ``key``.

        Ed25519 keys produce an Ed25519 authenticator and secp256k1 keys a
        SingleKey one. secp256r1 keys sign through a WebAuthn assertion whose
        challenge is the hash of the signing message.
        """
        keyed = self.keyed()
        if isinstance(key, ed25519.PrivateKey):
            return AccountAuthenticator(
                Ed25519Authenticator(key.public_key(), key.sign(keyed))
            )
        if isinstance(key, secp256k1_ecdsa.PrivateKey):
            return AccountAuthenticator(
                SingleKeyAuthenticator(key.public_key(), key.sign(keyed))
            )
        if isinstance(key, secp256r1_ecdsa.PrivateKey):
            assertion = webauthn.assert_message(key, keyed)
            return AccountAuthenticator(
                SingleKeyAuthenticator(key.public_key(), assertion)
            )
        raise NotImplementedError(f"Cannot sign with {type(key).__name__}")

    def sign_simulated(self, key: asymmetric_crypto.PublicKey) -> AccountAuthenticator:
        """An authenticator carrying ``key`` and an all-zero signature.

        Nodes accept it for simulation only. Keys without a fixed-size
        signature get the no-account authenticator.
        """
        if isinstance(key, ed25519.PublicKey):
            return AccountAuthenticator(
                Ed25519Authenticator(key, ed25519.Signature(b"\x00" * 64))
            )
        if isinstance(key, secp256k1_ecdsa.PublicKey):
            return AccountAuthenticator(
                SingleKeyAuthenticator(key, secp256k1_ecdsa.Signature(b"\x00" * 64))
            )
        return AccountAuthenticator(NoAccountAuthenticator())

    def verify(
        self, key: asymmetric_crypto.PublicKey, signature: asymmetric_crypto.Signature
    ) -> bool:
        return key.verify(self.keyed(), signature)


class RawTransactionWithData(RawTransactionInternal, Protocol):
    """A raw transaction bound to the addresses of its other signers.

    Encoded as a ULEB128 tag, 0 for multi-agent and 1 for fee payer, then the
    variant's fields.
    """

    MULTI_AGENT: int = 0
    FEE_PAYER: int = 1

    raw_transaction: RawTransaction

    def inner(self) -> RawTransaction:
        return self.raw_transaction

    def prehash(self) -> bytes:
        return hashing.raw_transaction_with_data_prehash()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> RawTransactionWithData:
        variant = deserializer.uleb128()
        if variant not in (
            RawTransactionWithData.MULTI_AGENT,
            RawTransactionWithData.FEE_PAYER,
        ):
            raise deserializer.fail(InvalidVariant("RawTransactionWithData", variant))
        raw_transaction = deserializer.struct(RawTransaction)
        secondary_signers = deserializer.sequence(AccountAddress.deserialize)
        if variant == RawTransactionWithData.MULTI_AGENT:
            return MultiAgentRawTransaction(raw_transaction, secondary_signers)
        fee_payer = deserializer.struct(AccountAddress)
        return FeePayerRawTransaction(raw_transaction, secondary_signers, fee_payer)


class RawTransaction(RawTransactionInternal):
    # Sender's address
    sender: AccountAddress
    # Must match the sender's on-chain sequence number at execution time
    sequence_number: int
    # What to execute
    payload: TransactionPayload
    # Maximum total gas to spend
    max_gas_amount: int
    # Price paid per gas unit
    gas_unit_price: int
    # Seconds since the Unix epoch after which the transaction is discarded
    expiration_timestamps_secs: int
    # Chain the transaction is valid on, a u8
    chain_id: int

    def __init__(
        self,
        sender: AccountAddress,
        sequence_number: int,
        payload: TransactionPayload,
        max_gas_amount: int,
        gas_unit_price: int,
        expiration_timestamps_secs: int,
        chain_id: int,
    ):
        self.sender = sender
        self.sequence_number = sequence_number
        self.payload = payload
        self.max_gas_amount = max_gas_amount
        self.gas_unit_price = gas_unit_price
        self.expiration_timestamps_secs = expiration_timestamps_secs
        self.chain_id = chain_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RawTransaction):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.sequence_number == other.sequence_number
            and self.payload == other.payload
            and self.max_gas_amount == other.max_gas_amount
            and self.gas_unit_price == other.gas_unit_price
            and self.expiration_timestamps_secs == other.expiration_timestamps_secs
            and self.chain_id == other.chain_id
        )

    def __str__(self):
        return f"""RawTransaction:
    sender: {self.sender}
    sequence_number: {self.sequence_number}
    payload: {self.payload}
    max_gas_amount: {self.max_gas_amount}
    gas_unit_price: {self.gas_unit_price}
    expiration_timestamps_secs: {self.expiration_timestamps_secs}
    chain_id: {self.chain_id}
"""

    def prehash(self) -> bytes:
        return hashing.raw_transaction_prehash()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> RawTransaction:
        return RawTransaction(
            deserializer.struct(AccountAddress),
            deserializer.u64(),
            deserializer.struct(TransactionPayload),
            deserializer.u64(),
            deserializer.u64(),
            deserializer.u64(),
            deserializer.u8(),
        )

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)
        serializer.u64(self.sequence_number)
        serializer.struct(self.payload)
        serializer.u64(self.max_gas_amount)
        serializer.u64(self.gas_unit_price)
        serializer.u64(self.expiration_timestamps_secs)
        serializer.u8(self.chain_id)


class MultiAgentRawTransaction(RawTransactionWithData):
    secondary_signers: List[AccountAddress]

    def __init__(
        self, raw_transaction: RawTransaction, secondary_signers: List[AccountAddress]
    ):
        self.raw_transaction = raw_transaction
        self.secondary_signers = secondary_signers

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiAgentRawTransaction):
            return NotImplemented
        return (
            self.raw_transaction == other.raw_transaction
            and self.secondary_signers == other.secondary_signers
        )

    def serialize(self, serializer: Serializer):
        serializer.uleb128(RawTransactionWithData.MULTI_AGENT)
        serializer.struct(self.raw_transaction)
        serializer.sequence(self.secondary_signers, Serializer.struct)


class FeePayerRawTransaction(RawTransactionWithData):
    """A transaction whose gas is paid by ``fee_payer``.

    Until the fee payer is known it is encoded as the zero address.
    """

    secondary_signers: List[AccountAddress]
    fee_payer: Optional[AccountAddress]

    def __init__(
        self,
        raw_transaction: RawTransaction,
        secondary_signers: List[AccountAddress],
        fee_payer: Optional[AccountAddress],
    ):
        self.raw_transaction = raw_transaction
        self.secondary_signers = secondary_signers
        self.fee_payer = fee_payer

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeePayerRawTransaction):
            return NotImplemented
        return (
            self.raw_transaction == other.raw_transaction
            and self.secondary_signers == other.secondary_signers
            and self.fee_payer_address() == other.fee_payer_address()
        )

    def fee_payer_address(self) -> AccountAddress:
        if self.fee_payer is None:
            return AccountAddress(b"\x00" * AccountAddress.LENGTH)
        return self.fee_payer

    def serialize(self, serializer: Serializer):
        serializer.uleb128(RawTransactionWithData.FEE_PAYER)
        serializer.struct(self.raw_transaction)
        serializer.sequence(self.secondary_signers, Serializer.struct)
        serializer.struct(self.fee_payer_address())


class TransactionPayload:
    """What a transaction executes. Module bundles are no longer accepted."""

    SCRIPT: int = 0
    MODULE_BUNDLE: int = 1
    ENTRY_FUNCTION: int = 2
    MULTISIG: int = 3

    variant: int
    value: Any

    def __init__(self, payload: Any):
        if isinstance(payload, Script):
            self.variant = TransactionPayload.SCRIPT
        elif isinstance(payload, EntryFunction):
            self.variant = TransactionPayload.ENTRY_FUNCTION
        elif isinstance(payload, Multisig):
            self.variant = TransactionPayload.MULTISIG
        else:
            raise TypeError(f"Invalid payload: {type(payload).__name__}")
        self.value = payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionPayload):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self) -> str:
        return self.value.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionPayload:
        variant = deserializer.uleb128()

        if variant == TransactionPayload.SCRIPT:
            payload: Any = Script.deserialize(deserializer)
        elif variant == TransactionPayload.ENTRY_FUNCTION:
            payload = EntryFunction.deserialize(deserializer)
        elif variant == TransactionPayload.MULTISIG:
            payload = Multisig.deserialize(deserializer)
        else:
            raise deserializer.fail(InvalidVariant("TransactionPayload", variant))

        return TransactionPayload(payload)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.value)


class Script:
    code: bytes
    ty_args: List[TypeTag]
    args: List[ScriptArgument]

    def __init__(self, code: bytes, ty_args: List[TypeTag], args: List[ScriptArgument]):
        self.code = code
        self.ty_args = ty_args
        self.args = args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Script):
            return NotImplemented
        return (
            self.code == other.code
            and self.ty_args == other.ty_args
            and self.args == other.args
        )

    def __str__(self):
        return f"<{self.ty_args}>({self.args})"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Script:
        code = deserializer.to_bytes()
        ty_args = deserializer.sequence(TypeTag.deserialize)
        args = deserializer.sequence(ScriptArgument.deserialize)
        return Script(code, ty_args, args)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.code)
        serializer.sequence(self.ty_args, Serializer.struct)
        serializer.sequence(self.args, Serializer.struct)


class ScriptArgument:
    """A typed script argument. ``SERIALIZED`` carries pre-encoded BCS bytes."""

    U8: int = 0
    U64: int = 1
    U128: int = 2
    ADDRESS: int = 3
    U8_VECTOR: int = 4
    BOOL: int = 5
    U16: int = 6
    U32: int = 7
    U256: int = 8
    SERIALIZED: int = 9

    variant: int
    value: Any

    def __init__(self, variant: int, value: Any):
        if variant < ScriptArgument.U8 or variant > ScriptArgument.SERIALIZED:
            raise ValueError(f"Invalid script argument variant {variant}")
        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptArgument):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        return f"[{self.variant}] {self.value}"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ScriptArgument:
        variant = deserializer.uleb128()
        if variant == ScriptArgument.U8:
            value: Any = deserializer.u8()
        elif variant == ScriptArgument.U16:
            value = deserializer.u16()
        elif variant == ScriptArgument.U32:
            value = deserializer.u32()
        elif variant == ScriptArgument.U64:
            value = deserializer.u64()
        elif variant == ScriptArgument.U128:
            value = deserializer.u128()
        elif variant == ScriptArgument.U256:
            value = deserializer.u256()
        elif variant == ScriptArgument.ADDRESS:
            value = deserializer.struct(AccountAddress)
        elif variant in (ScriptArgument.U8_VECTOR, ScriptArgument.SERIALIZED):
            value = deserializer.to_bytes()
        elif variant == ScriptArgument.BOOL:
            value = deserializer.bool()
        else:
            raise deserializer.fail(InvalidVariant("ScriptArgument", variant))
        return ScriptArgument(variant, value)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant == ScriptArgument.U8:
            serializer.u8(self.value)
        elif self.variant == ScriptArgument.U16:
            serializer.u16(self.value)
        elif self.variant == ScriptArgument.U32:
            serializer.u32(self.value)
        elif self.variant == ScriptArgument.U64:
            serializer.u64(self.value)
        elif self.variant == ScriptArgument.U128:
            serializer.u128(self.value)
        elif self.variant == ScriptArgument.U256:
            serializer.u256(self.value)
        elif self.variant == ScriptArgument.ADDRESS:
            serializer.struct(self.value)
        elif self.variant in (ScriptArgument.U8_VECTOR, ScriptArgument.SERIALIZED):
            serializer.to_bytes(self.value)
        elif self.variant == ScriptArgument.BOOL:
            serializer.bool(self.value)


class EntryFunction:
    """A call to a public entry function with BCS-encoded arguments."""

    module: ModuleId
    function: str
    ty_args: List[TypeTag]
    args: List[bytes]

    def __init__(
        self, module: ModuleId, function: str, ty_args: List[TypeTag], args: List[bytes]
    ):
        self.module = module
        self.function = function
        self.ty_args = ty_args
        self.args = args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntryFunction):
            return NotImplemented
        return (
            self.module == other.module
            and self.function == other.function
            and self.ty_args == other.ty_args
            and self.args == other.args
        )

    def __str__(self):
        return f"{self.module}::{self.function}::<{self.ty_args}>({self.args})"

    @staticmethod
    def natural(
        module: str,
        function: str,
        ty_args: List[TypeTag],
        args: List[TransactionArgument],
    ) -> EntryFunction:
        """Build from a ``"0x1::coin"`` style module and unencoded arguments."""
        module_id = ModuleId.from_str(module)

        byte_args = []
        for arg in args:
            byte_args.append(arg.encode())
        return EntryFunction(module_id, function, ty_args, byte_args)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EntryFunction:
        module = deserializer.struct(ModuleId)
        function = deserializer.str()
        ty_args = deserializer.sequence(TypeTag.deserialize)
        args = deserializer.sequence(Deserializer.to_bytes)
        return EntryFunction(module, function, ty_args, args)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.module)
        serializer.str(self.function)
        serializer.sequence(self.ty_args, Serializer.struct)
        serializer.sequence(self.args, Serializer.to_bytes)


class Multisig:
    """Executes a transaction on behalf of a multisig account.

    Without a payload, the payload stored on chain when the transaction was
    proposed is executed.
    """

    multisig_address: AccountAddress
    transaction_payload: Optional[MultisigTransactionPayload]

    def __init__(
        self,
        multisig_address: AccountAddress,
        transaction_payload: Optional[MultisigTransactionPayload] = None,
    ):
        self.multisig_address = multisig_address
        self.transaction_payload = transaction_payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Multisig):
            return NotImplemented
        return (
            self.multisig_address == other.multisig_address
            and self.transaction_payload == other.transaction_payload
        )

    def __str__(self):
        return f"Multisig {self.multisig_address}: {self.transaction_payload}"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Multisig:
        multisig_address = deserializer.struct(AccountAddress)
        transaction_payload = deserializer.option(
            MultisigTransactionPayload.deserialize
        )
        return Multisig(multisig_address, transaction_payload)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.multisig_address)
        serializer.option(self.transaction_payload, Serializer.struct)


class MultisigTransactionPayload:
    """The payload a multisig account executes. Only entry functions exist."""

    ENTRY_FUNCTION: int = 0

    variant: int
    transaction_payload: EntryFunction

    def __init__(self, transaction_payload: EntryFunction):
        if not isinstance(transaction_payload, EntryFunction):
            raise TypeError(f"Invalid payload: {type(transaction_payload).__name__}")
        self.variant = MultisigTransactionPayload.ENTRY_FUNCTION
        self.transaction_payload = transaction_payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultisigTransactionPayload):
            return NotImplemented
        return self.transaction_payload == other.transaction_payload

    def __str__(self):
        return self.transaction_payload.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultisigTransactionPayload:
        variant = deserializer.uleb128()
        if variant != MultisigTransactionPayload.ENTRY_FUNCTION:
            raise deserializer.fail(
                InvalidVariant("MultisigTransactionPayload", variant)
            )
        return MultisigTransactionPayload(deserializer.struct(EntryFunction))

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.transaction_payload)


class ModuleId:
    address: AccountAddress
    name: str

    def __init__(self, address: AccountAddress, name: str):
        self.address = address
        self.name = name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModuleId):
            return NotImplemented
        return self.address == other.address and self.name == other.name

    def __str__(self) -> str:
        return f"{self.address}::{self.name}"

    @staticmethod
    def from_str(module_id: str) -> ModuleId:
        split = module_id.split("::")
        if len(split) != 2 or not split[1]:
            raise ValueError(f"Invalid module id: {module_id}")
        return ModuleId(AccountAddress.from_str_relaxed(split[0]), split[1])

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ModuleId:
        address = deserializer.struct(AccountAddress)
        name = deserializer.str()
        return ModuleId(address, name)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.address)
        serializer.str(self.name)


class TransactionArgument:
    """An entry function argument with the encoder that produces its BCS bytes.

    Examples:
        ``TransactionArgument(1000, Serializer.u64)``
    """

    value: Any
    encoder: Callable[[Serializer, Any], None]

    def __init__(
        self,
        value: Any,
        encoder: Callable[[Serializer, Any], None],
    ):
        self.value = value
        self.encoder = encoder

    def encode(self) -> bytes:
        ser = Serializer()
        self.encoder(ser, self.value)
        return ser.output()


class SignedTransaction:
    """A raw transaction with its transaction authenticator, ready to submit."""

    transaction: RawTransaction
    authenticator: Authenticator

    def __init__(
        self,
        transaction: RawTransaction,
        authenticator: Union[AccountAuthenticator, Authenticator],
    ):
        self.transaction = transaction
        if isinstance(authenticator, AccountAuthenticator):
            authenticator = Authenticator.for_sender(authenticator)
        self.authenticator = authenticator

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignedTransaction):
            return NotImplemented
        return (
            self.transaction == other.transaction
            and self.authenticator == other.authenticator
        )

    def __str__(self) -> str:
        return f"Transaction: {self.transaction}Authenticator: {self.authenticator}"

    def bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def hash(self) -> bytes:
        """The transaction hash nodes report: a user transaction in the
        ``APTOS::Transaction`` domain."""
        hasher = hashlib.sha3_256()
        hasher.update(hashing.transaction_prehash())
        hasher.update(bytes([USER_TRANSACTION]))
        hasher.update(self.bytes())
        return hasher.digest()

    def signed_message(self) -> RawTransactionInternal:
        """The object whose signing message the authenticator covers."""
        auth = self.authenticator.authenticator
        if isinstance(auth, MultiAgentAuthenticator):
            return MultiAgentRawTransaction(
                self.transaction, auth.secondary_addresses()
            )
        if isinstance(auth, FeePayerAuthenticator):
            return cast(
                RawTransactionInternal,
                FeePayerRawTransaction(
                    self.transaction,
                    auth.secondary_addresses(),
                    auth.fee_payer_address(),
                ),
            )
        return self.transaction

    def verify(self) -> bool:
        return self.authenticator.verify(self.signed_message().keyed())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SignedTransaction:
        transaction = deserializer.struct(RawTransaction)
        authenticator = deserializer.struct(Authenticator)
        return SignedTransaction(transaction, authenticator)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.transaction)
        serializer.struct(self.authenticator)


class Test(unittest.TestCase):
    def transfer_payload(self) -> TransactionPayload:
        return TransactionPayload(
            EntryFunction.natural(
                "0x1::coin",
                "transfer",
                [TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))],
                [
                    TransactionArgument(
                        AccountAddress.from_str("0x2"), Serializer.struct
                    ),
                    TransactionArgument(1000, Serializer.u64),
                ],
            )
        )

    def test_raw_transaction_round_trip(self):
        raw_transaction = RawTransaction(
            AccountAddress.from_str("0x1"),
            42,
            self.transfer_payload(),
            200000,
            100,
            1_700_000_000,
            4,
        )
        ser = Serializer()
        raw_transaction.serialize(ser)
        encoded = ser.output()
        self.assertEqual(encoded[:32], b"\x00" * 31 + b"\x01")
        self.assertEqual(encoded[32:40], (42).to_bytes(8, "little"))
        self.assertEqual(encoded[40], TransactionPayload.ENTRY_FUNCTION)
        self.assertEqual(encoded[-1], 4)
        self.assertEqual(
            RawTransaction.deserialize(Deserializer(encoded)), raw_transaction
        )

        signing_message = raw_transaction.signing_message()
        self.assertEqual(len(signing_message), 32 + len(encoded))
        self.assertEqual(
            signing_message[:32], hashlib.sha3_256(b"APTOS::RawTransaction").digest()
        )
        self.assertEqual(signing_message[32:], encoded)

    def test_entry_function(self):
        private_key = ed25519.PrivateKey.random()
        account_address = AccountAddress.from_key(private_key.public_key())

        raw_transaction = RawTransaction(
            account_address,
            0,
            self.transfer_payload(),
            2000,
            0,
            18446744073709551615,
            4,
        )

        authenticator = raw_transaction.sign(private_key)
        signed_transaction = SignedTransaction(raw_transaction, authenticator)
        self.assertEqual(
            signed_transaction.authenticator.variant, Authenticator.ED25519
        )
        self.assertTrue(signed_transaction.verify())

    def test_secp256k1_sender(self):
        private_key = secp256k1_ecdsa.PrivateKey.random()
        raw_transaction = RawTransaction(
            AccountAddress.from_key(private_key.public_key()),
            7,
            self.transfer_payload(),
            2000,
            100,
            1_700_000_000,
            2,
        )
        signed_transaction = SignedTransaction(
            raw_transaction, raw_transaction.sign(private_key)
        )
        self.assertEqual(
            signed_transaction.authenticator.variant, Authenticator.SINGLE_SENDER
        )
        self.assertTrue(signed_transaction.verify())

        decoded = SignedTransaction.deserialize(
            Deserializer(signed_transaction.bytes())
        )
        self.assertEqual(decoded, signed_transaction)
        self.assertTrue(decoded.verify())

    def test_secp256r1_sender_signs_with_webauthn(self):
        private_key = secp256r1_ecdsa.PrivateKey.random()
        raw_transaction = RawTransaction(
            AccountAddress.from_key(private_key.public_key()),
            0,
            self.transfer_payload(),
            2000,
            100,
            1_700_000_000,
            2,
        )
        authenticator = raw_transaction.sign(private_key)
        signature = authenticator.authenticator.signature
        self.assertIsInstance(
            signature.signature, webauthn.PartialAuthenticatorAssertionResponse
        )
        signed_transaction = SignedTransaction(raw_transaction, authenticator)
        self.assertTrue(signed_transaction.verify())

    def test_tampered_transaction_rejected(self):
        private_key = ed25519.PrivateKey.random()
        raw_transaction = RawTransaction(
            AccountAddress.from_key(private_key.public_key()),
            0,
            self.transfer_payload(),
            2000,
            100,
            1_700_000_000,
            4,
        )
        authenticator = raw_transaction.sign(private_key)
        raw_transaction.sequence_number = 1
        self.assertFalse(SignedTransaction(raw_transaction, authenticator).verify())

    def test_hash(self):
        private_key = ed25519.PrivateKey.random()
        raw_transaction = RawTransaction(
            AccountAddress.from_key(private_key.public_key()),
            0,
            self.transfer_payload(),
            2000,
            100,
            1_700_000_000,
            4,
        )
        signed_transaction = SignedTransaction(
            raw_transaction, raw_transaction.sign(private_key)
        )
        expected = hashlib.sha3_256(
            hashlib.sha3_256(b"APTOS::Transaction").digest()
            + b"\x00"
            + signed_transaction.bytes()
        ).digest()
        self.assertEqual(signed_transaction.hash(), expected)

    def test_simulated_signatures_do_not_verify(self):
        private_key = ed25519.PrivateKey.random()
        raw_transaction = RawTransaction(
            AccountAddress.from_key(private_key.public_key()),
            0,
            self.transfer_payload(),
            2000,
            100,
            1_700_000_000,
            4,
        )
        simulated = raw_transaction.sign_simulated(private_key.public_key())
        self.assertEqual(
            simulated.authenticator.signature, ed25519.Signature(b"\x00" * 64)
        )
        self.assertFalse(SignedTransaction(raw_transaction, simulated).verify())

        r1_key = secp256r1_ecdsa.PrivateKey.random().public_key()
        simulated = raw_transaction.sign_simulated(r1_key)
        self.assertEqual(
            simulated.variant, AccountAuthenticator.NO_ACCOUNT_AUTHENTICATOR
        )

    def test_script(self):
        script = Script(
            b"\xa1\x1c\xeb\x0b",
            [TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))],
            [
                ScriptArgument(ScriptArgument.U8, 1),
                ScriptArgument(ScriptArgument.U16, 2),
                ScriptArgument(ScriptArgument.U32, 3),
                ScriptArgument(ScriptArgument.U64, 4),
                ScriptArgument(ScriptArgument.U128, 5),
                ScriptArgument(ScriptArgument.U256, 6),
                ScriptArgument(ScriptArgument.ADDRESS, AccountAddress.from_str("0x1")),
                ScriptArgument(ScriptArgument.U8_VECTOR, b"\x01\x02"),
                ScriptArgument(ScriptArgument.BOOL, True),
                ScriptArgument(ScriptArgument.SERIALIZED, b"\x05hello"),
            ],
        )
        payload = TransactionPayload(script)
        ser = Serializer()
        payload.serialize(ser)
        encoded = ser.output()
        self.assertEqual(encoded[0], TransactionPayload.SCRIPT)
        self.assertEqual(TransactionPayload.deserialize(Deserializer(encoded)), payload)

        with self.assertRaises(ValueError):
            ScriptArgument(10, b"")
        with self.assertRaises(InvalidVariant):
            ScriptArgument.deserialize(Deserializer(b"\x0a"))

    def test_multisig_payload(self):
        multisig_address = AccountAddress.from_str_relaxed("0xabc")
        entry_function = self.transfer_payload().value
        payload = TransactionPayload(
            Multisig(multisig_address, MultisigTransactionPayload(entry_function))
        )
        ser = Serializer()
        payload.serialize(ser)
        encoded = ser.output()
        self.assertEqual(encoded[0], TransactionPayload.MULTISIG)
        self.assertEqual(encoded[33:35], b"\x01\x00")
        self.assertEqual(TransactionPayload.deserialize(Deserializer(encoded)), payload)

        without_payload = TransactionPayload(Multisig(multisig_address))
        ser = Serializer()
        without_payload.serialize(ser)
        self.assertEqual(ser.output(), b"\x03" + multisig_address.address + b"\x00")

    def test_module_bundle_rejected(self):
        with self.assertRaises(InvalidVariant):
            TransactionPayload.deserialize(Deserializer(b"\x01\x00"))
        with self.assertRaises(InvalidVariant):
            TransactionPayload.deserialize(Deserializer(b"\x04"))
        with self.assertRaises(TypeError):
            TransactionPayload(b"not a payload")

    def test_module_id(self):
        module = ModuleId.from_str("0x1::coin")
        self.assertEqual(str(module), "0x1::coin")
        with self.assertRaises(ValueError):
            ModuleId.from_str("0x1::coin::transfer")

    def test_raw_transaction_with_data(self):
        sender = ed25519.PrivateKey.random()
        secondary = secp256k1_ecdsa.PrivateKey.random()
        fee_payer = ed25519.PrivateKey.random()
        secondary_address = AccountAddress.from_key(secondary.public_key())
        fee_payer_address = AccountAddress.from_key(fee_payer.public_key())
        raw_transaction = RawTransaction(
            AccountAddress.from_key(sender.public_key()),
            3,
            self.transfer_payload(),
            2000,
            100,
            1_700_000_000,
            4,
        )

        multi_agent = MultiAgentRawTransaction(raw_transaction, [secondary_address])
        self.assertEqual(
            multi_agent.keyed()[:32],
            hashlib.sha3_256(b"APTOS::RawTransactionWithData").digest(),
        )
        ser = Serializer()
        multi_agent.serialize(ser)
        self.assertEqual(ser.output()[0], RawTransactionWithData.MULTI_AGENT)
        self.assertEqual(
            RawTransactionWithData.deserialize(Deserializer(ser.output())), multi_agent
        )

        unresolved = FeePayerRawTransaction(raw_transaction, [], None)
        ser = Serializer()
        unresolved.serialize(ser)
        self.assertEqual(ser.output()[0], RawTransactionWithData.FEE_PAYER)
        self.assertEqual(ser.output()[-32:], b"\x00" * 32)
        self.assertEqual(
            RawTransactionWithData.deserialize(Deserializer(ser.output())), unresolved
        )

        with_fee_payer = FeePayerRawTransaction(
            raw_transaction, [secondary_address], fee_payer_address
        )
        authenticator = Authenticator(
            FeePayerAuthenticator(
                with_fee_payer.sign(sender),
                [(secondary_address, with_fee_payer.sign(secondary))],
                (fee_payer_address, with_fee_payer.sign(fee_payer)),
            )
        )
        signed_transaction = SignedTransaction(with_fee_payer.inner(), authenticator)
        self.assertTrue(signed_transaction.verify())
        self.assertEqual(signed_transaction.signed_message(), with_fee_payer)

        with self.assertRaises(InvalidVariant):
            RawTransactionWithData.deserialize(Deserializer(b"\x07"))

        ser = Serializer()
        ser.uleb128(2)
        raw_transaction.serialize(ser)
        with self.assertRaises(InvalidVariant):
            RawTransactionWithData.deserialize(Deserializer(ser.output()))

    def test_entry_function_with_corpus(self):
        sender_key_input = (
            "9bf49a6a0755f953811fce125f2683d50429c3bb49e074147e0089a52eae155f"
        )
        receiver_key_input = (
            "0564f879d27ae3c02ce82834acfa8c793a629f2ca0de6919610be82f411326be"
        )

        sender_private_key = ed25519.PrivateKey.from_str(sender_key_input, False)
        sender_account_address = AccountAddress.from_key(
            sender_private_key.public_key()
        )
        receiver_private_key = ed25519.PrivateKey.from_str(receiver_key_input, False)
        receiver_account_address = AccountAddress.from_key(
            receiver_private_key.public_key()
        )

        transaction_arguments = [
            TransactionArgument(receiver_account_address, Serializer.struct),
            TransactionArgument(5000, Serializer.u64),
        ]
        payload = EntryFunction.natural(
            "0x1::coin",
            "transfer",
            [TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))],
            transaction_arguments,
        )
        raw_transaction_generated = RawTransaction(
            sender_account_address,
            11,
            TransactionPayload(payload),
            2000,
            1,
            1234567890,
            4,
        )

        authenticator = raw_transaction_generated.sign(sender_private_key)
        signed_transaction_generated = SignedTransaction(
            raw_transaction_generated, authenticator
        )
        self.assertTrue(signed_transaction_generated.verify())

        raw_transaction_input = (
            "7deeccb1080854f499ec8b4c1b213b82c5e34b925cf6875fec02d4b77adbd2d6"
            "0b00000000000000020000000000000000000000000000000000000000000000"
            "00000000000000000104636f696e087472616e73666572010700000000000000"
            "000000000000000000000000000000000000000000000000010a6170746f735f"
            "636f696e094170746f73436f696e0002202d133ddd281bb6205558357cc6ac75"
            "661817e9aaeac3afebc32842759cbf7fa9088813000000000000d00700000000"
            "00000100000000000000d20296490000000004"
        )
        signed_transaction_input = raw_transaction_input + (
            "0020b9c6ee1630ef3e711144a648db06bbb2284f7274cfbee53ffcee503cc1a4"
            "920040f25b74ec60a38a1ed780fd2bef6ddb6eb4356e3ab39276c9176cdf0fca"
            "e2ab37d79b626abb43d926e91595b66503a4a3c90acbae36a28d405e308f3537"
            "af720b"
        )

        self.verify_transactions(
            raw_transaction_input,
            raw_transaction_generated,
            signed_transaction_input,
            signed_transaction_generated,
        )

    def test_entry_function_multi_agent_with_corpus(self):
        sender_key_input = (
            "9bf49a6a0755f953811fce125f2683d50429c3bb49e074147e0089a52eae155f"
        )
        receiver_key_input = (
            "0564f879d27ae3c02ce82834acfa8c793a629f2ca0de6919610be82f411326be"
        )

        sender_private_key = ed25519.PrivateKey.from_str(sender_key_input, False)
        sender_account_address = AccountAddress.from_key(
            sender_private_key.public_key()
        )
        receiver_private_key = ed25519.PrivateKey.from_str(receiver_key_input, False)
        receiver_account_address = AccountAddress.from_key(
            receiver_private_key.public_key()
        )

        transaction_arguments = [
            TransactionArgument(receiver_account_address, Serializer.struct),
            TransactionArgument("collection_name", Serializer.str),
            TransactionArgument("token_name", Serializer.str),
            TransactionArgument(1, Serializer.u64),
        ]
        payload = EntryFunction.natural(
            "0x3::token",
            "direct_transfer_script",
            [],
            transaction_arguments,
        )
        raw_transaction_generated = MultiAgentRawTransaction(
            RawTransaction(
                sender_account_address,
                11,
                TransactionPayload(payload),
                2000,
                1,
                1234567890,
                4,
            ),
            [receiver_account_address],
        )

        sender_authenticator = raw_transaction_generated.sign(sender_private_key)
        receiver_authenticator = raw_transaction_generated.sign(receiver_private_key)
        authenticator = Authenticator(
            MultiAgentAuthenticator(
                sender_authenticator,
                [(receiver_account_address, receiver_authenticator)],
            )
        )
        signed_transaction_generated = SignedTransaction(
            raw_transaction_generated.inner(), authenticator
        )
        self.assertTrue(signed_transaction_generated.verify())

        raw_transaction_input = (
            "7deeccb1080854f499ec8b4c1b213b82c5e34b925cf6875fec02d4b77adbd2d6"
            "0b00000000000000020000000000000000000000000000000000000000000000"
            "00000000000000000305746f6b656e166469726563745f7472616e736665725f"
            "7363726970740004202d133ddd281bb6205558357cc6ac75661817e9aaeac3af"
            "ebc32842759cbf7fa9100f636f6c6c656374696f6e5f6e616d650b0a746f6b65"
            "6e5f6e616d65080100000000000000d0070000000000000100000000000000d2"
            "0296490000000004"
        )
        signed_transaction_input = raw_transaction_input + (
            "020020b9c6ee1630ef3e711144a648db06bbb2284f7274cfbee53ffcee503cc1"
            "a4920040343e7b10aa323c480391a5d7cd2d0cf708d51529b96b5a2be08cbb36"
            "5e4f11dcc2cf0655766cf70d40853b9c395b62dad7a9f58ed998803d8bf1901b"
            "a7a7a401012d133ddd281bb6205558357cc6ac75661817e9aaeac3afebc32842"
            "759cbf7fa9010020aef3f4a4b8eca1dfc343361bf8e436bd42de9259c04b8314"
            "eb8e2054dd6e82ab408a7f06e404ae8d9535b0cbbeafb7c9e34e95fe1425e452"
            "9758150a4f7ce7a683354148ad5c313ec36549e3fb29e669d90010f97467c907"
            "4ff0aec3ed87f76608"
        )

        self.verify_transactions(
            raw_transaction_input,
            raw_transaction_generated.inner(),
            signed_transaction_input,
            signed_transaction_generated,
        )

    def verify_transactions(
        self,
        raw_transaction_input: str,
        raw_transaction_generated: RawTransaction,
        signed_transaction_input: str,
        signed_transaction_generated: SignedTransaction,
    ):
        ser = Serializer()
        ser.struct(raw_transaction_generated)
        self.assertEqual(raw_transaction_input, ser.output().hex())
        raw_transaction = RawTransaction.deserialize(
            Deserializer(bytes.fromhex(raw_transaction_input))
        )
        self.assertEqual(raw_transaction_generated, raw_transaction)

        self.assertEqual(
            signed_transaction_input, signed_transaction_generated.bytes().hex()
        )
        signed_transaction = SignedTransaction.deserialize(
            Deserializer(bytes.fromhex(signed_transaction_input))
        )
        self.assertEqual(signed_transaction.transaction, raw_transaction)
        self.assertTrue(signed_transaction.verify())


if __name__ == "__main__":
    unittest.main()
