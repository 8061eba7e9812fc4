import typing

from behave import given, then, use_step_matcher, when

from aptos_core import bcs, ed25519, hashing, secp256k1_ecdsa
from aptos_core.account_address import AccountAddress
from aptos_core.bcs import Deserializer, Serializer
from aptos_core.transactions import (
    EntryFunction,
    RawTransaction,
    SignedTransaction,
    TransactionArgument,
    TransactionPayload,
)
from aptos_core.type_tag import StructTag, TypeTag

# Use regular expressions
use_step_matcher("re")


@given(
    r"a coin transfer from (?P<sender>\S+) with sequence number (?P<sequence>[0-9]+) on chain (?P<chain>[0-9]+)"
)
def given_coin_transfer(context: typing.Any, sender: str, sequence: str, chain: str):
    payload = TransactionPayload(
        EntryFunction.natural(
            "0x1::coin",
            "transfer",
            [TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))],
            [
                TransactionArgument(AccountAddress.from_str("0x2"), Serializer.struct),
                TransactionArgument(1000, Serializer.u64),
            ],
        )
    )
    context.transaction = RawTransaction(
        AccountAddress.from_str_relaxed(sender),
        int(sequence),
        payload,
        200_000,
        100,
        1_700_000_000,
        int(chain),
    )


@when(r"I serialize the transaction")
def when_serialize_transaction(context: typing.Any):
    context.output = bcs.encode(context.transaction)


@when(r"I deserialize the transaction")
def when_deserialize_transaction(context: typing.Any):
    des = Deserializer(context.output)
    context.decoded = RawTransaction.deserialize(des)
    assert des.remaining() == 0


@when(r"I sign the transaction with a new (?P<scheme>ed25519|secp256k1) key")
def when_sign_transaction(context: typing.Any, scheme: str):
    if scheme == "ed25519":
        private_key = ed25519.PrivateKey.random()
    else:
        private_key = secp256k1_ecdsa.PrivateKey.random()
    authenticator = context.transaction.sign(private_key)
    context.signed_transaction = SignedTransaction(context.transaction, authenticator)


@when(r"the sequence number is changed to (?P<sequence>[0-9]+)")
def when_sequence_changed(context: typing.Any, sequence: str):
    context.transaction.sequence_number = int(sequence)


@then(r"the deserialized transaction should equal the original")
def then_round_trip(context: typing.Any):
    assert context.decoded == context.transaction, (
        "Expected " + str(context.transaction) + " but got " + str(context.decoded)
    )


@then(r"the signing message should start with the raw transaction prehash")
def then_signing_message_prehash(context: typing.Any):
    signing_message = context.transaction.signing_message()
    assert signing_message[:32] == hashing.raw_transaction_prehash()
    assert signing_message[32:] == bcs.encode(context.transaction)


@then(r"the signed transaction is valid")
def then_signed_transaction_valid(context: typing.Any):
    assert context.signed_transaction.verify()


@then(r"the signed transaction is invalid")
def then_signed_transaction_invalid(context: typing.Any):
    assert not context.signed_transaction.verify()


@then(r"the signed transaction should survive serialization")
def then_signed_transaction_round_trip(context: typing.Any):
    data = context.signed_transaction.bytes()
    decoded = SignedTransaction.deserialize(Deserializer(data))
    assert decoded == context.signed_transaction
    assert decoded.verify()
