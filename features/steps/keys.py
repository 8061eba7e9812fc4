import typing

from behave import given, then, use_step_matcher, when

from aptos_core import asymmetric_crypto_wrapper, ed25519, secp256k1_ecdsa
from aptos_core.authentication_key import AuthenticationKey
from aptos_core.bcs import Serializer

# Use regular expressions
use_step_matcher("re")


def _hex(value: str) -> bytes:
    return bytes.fromhex(value.removeprefix("0x"))


SCHEMES: typing.Dict[str, typing.Any] = {
    "ed25519": ed25519,
    "secp256k1": secp256k1_ecdsa,
}


@given(r"(?P<scheme>ed25519|secp256k1) private key (?P<key>\S+)")
def given_private_key(context: typing.Any, scheme: str, key: str):
    context.scheme = SCHEMES[scheme]
    context.private_key = context.scheme.PrivateKey.from_str(key, False)
    context.public_key = context.private_key.public_key()


@given(r"(?P<count>[0-9]+) (?P<scheme>ed25519|secp256k1) keys?")
def given_random_keys(context: typing.Any, count: str, scheme: str):
    keys = getattr(context, "keys", [])
    for _ in range(int(count)):
        keys.append(SCHEMES[scheme].PrivateKey.random())
    context.keys = keys


@given(r"a (?P<threshold>[0-9]+) of (?P<count>[0-9]+) multi key")
def given_multi_key(context: typing.Any, threshold: str, count: str):
    assert len(context.keys) == int(count)
    context.multi_key = asymmetric_crypto_wrapper.MultiKey(
        [key.public_key() for key in context.keys], int(threshold)
    )


@when(r"I sign the message (?P<message>.+)")
def when_sign_message(context: typing.Any, message: str):
    context.message = message.strip('"').encode()
    context.signature = context.private_key.sign(context.message)


@when(r"keys (?P<indices>[0-9,]+) sign the message (?P<message>.+)")
def when_multi_key_sign(context: typing.Any, indices: str, message: str):
    context.message = message.strip('"').encode()
    context.signatures = [
        (int(index), context.keys[int(index)].sign(context.message))
        for index in indices.split(",")
    ]
    context.signature = asymmetric_crypto_wrapper.MultiKeySignature.from_indexed(
        context.signatures
    )


@when(r"the signature of key (?P<index>[0-9]+) is removed")
def when_signature_removed(context: typing.Any, index: str):
    position = context.signature.signer_indices().index(int(index))
    signatures = list(context.signature.signatures)
    del signatures[position]
    context.signature = asymmetric_crypto_wrapper.MultiKeySignature(
        signatures, context.signature.bitmap
    )


@then(r"the public key should be (?P<expected>\S+)")
def then_public_key(context: typing.Any, expected: str):
    assert context.public_key == context.scheme.PublicKey.from_str(expected), (
        "Expected " + expected + " but got " + str(context.public_key)
    )


@then(r"the authentication key should be (?P<expected>\S+)")
def then_authentication_key(context: typing.Any, expected: str):
    auth_key = AuthenticationKey.from_public_key(context.public_key)
    assert str(auth_key) == expected, (
        "Expected " + expected + " but got " + str(auth_key)
    )


@then(r"the signature should be (?P<expected>\S+)")
def then_signature(context: typing.Any, expected: str):
    assert context.signature == context.scheme.Signature.from_str(expected), (
        "Expected " + expected + " but got " + str(context.signature)
    )


@then(r"the signature bitmap should be (?P<expected>\S+)")
def then_bitmap(context: typing.Any, expected: str):
    assert context.signature.bitmap == _hex(expected), (
        "Expected " + expected + " but got " + context.signature.bitmap.hex()
    )


@then(r"the signature is valid")
def then_verifies(context: typing.Any):
    assert context.public_key.verify(context.message, context.signature)


@then(r"the multi key signature is valid")
def then_multi_key_verifies(context: typing.Any):
    assert context.multi_key.verify(context.message, context.signature)


@then(r"the multi key signature is invalid")
def then_multi_key_rejects(context: typing.Any):
    assert not context.multi_key.verify(context.message, context.signature)


@then(r"the public key should serialize to (?P<expected>\S+)")
def then_public_key_bytes(context: typing.Any, expected: str):
    ser = Serializer()
    ser.struct(context.public_key)
    assert ser.output() == _hex(expected), (
        "Expected " + expected + " but got " + ser.output().hex()
    )
