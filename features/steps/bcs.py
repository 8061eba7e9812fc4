import typing

from behave import then, use_step_matcher, when

from aptos_core.account_address import AccountAddress
from aptos_core.bcs import Deserializer, RemainingBytes, Serializer

# Use regular expressions
use_step_matcher("re")

ENCODERS: typing.Dict[str, typing.Callable[[Serializer, typing.Any], None]] = {
    "bool": Serializer.bool,
    "u8": Serializer.u8,
    "u16": Serializer.u16,
    "u32": Serializer.u32,
    "u64": Serializer.u64,
    "u128": Serializer.u128,
    "u256": Serializer.u256,
    "i8": Serializer.i8,
    "i16": Serializer.i16,
    "i32": Serializer.i32,
    "i64": Serializer.i64,
    "i128": Serializer.i128,
    "i256": Serializer.i256,
    "uleb128": Serializer.uleb128,
    "address": Serializer.struct,
    "bytes": Serializer.to_bytes,
    "string": Serializer.str,
}

DECODERS: typing.Dict[str, typing.Callable[[Deserializer], typing.Any]] = {
    "bool": Deserializer.bool,
    "u8": Deserializer.u8,
    "u16": Deserializer.u16,
    "u32": Deserializer.u32,
    "u64": Deserializer.u64,
    "u128": Deserializer.u128,
    "u256": Deserializer.u256,
    "i8": Deserializer.i8,
    "i16": Deserializer.i16,
    "i32": Deserializer.i32,
    "i64": Deserializer.i64,
    "i128": Deserializer.i128,
    "i256": Deserializer.i256,
    "uleb128": Deserializer.uleb128,
    "address": AccountAddress.deserialize,
    "bytes": Deserializer.to_bytes,
    "string": Deserializer.str,
}


def encoder_for(input_type: str) -> typing.Callable[[Serializer, typing.Any], None]:
    if input_type not in ENCODERS:
        raise Exception("Unrecognized input type")
    return ENCODERS[input_type]


def decoder_for(input_type: str) -> typing.Callable[[Deserializer], typing.Any]:
    if input_type not in DECODERS:
        raise Exception("Unrecognized input type")
    return DECODERS[input_type]


@when(r"I serialize as (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize(context: typing.Any, input_type: str):
    ser = Serializer()
    try:
        encoder_for(input_type)(ser, context.input)
        context.output = ser.output()
    except Exception as e:
        context.output = e


@when(r"I deserialize as (?P<input_type>[a-zA-Z0-9]+)")
def when_deserialize(context: typing.Any, input_type: str):
    decoder = decoder_for(input_type)
    des = Deserializer(context.input)
    try:
        context.output = decoder(des)
        if des.remaining() > 0:
            raise RemainingBytes(des.remaining())
    except Exception as e:
        context.output = e


@when(r"I serialize as sequence of (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize_sequence(context: typing.Any, input_type: str):
    ser = Serializer()
    seq_ser = Serializer.sequence_serializer(encoder_for(input_type))
    seq_ser(ser, context.input)
    context.output = ser.output()


@when(r"I deserialize as sequence of (?P<input_type>[a-zA-Z0-9]+)")
def when_deserialize_sequence(context: typing.Any, input_type: str):
    des = Deserializer(context.input)
    try:
        context.output = des.sequence(decoder_for(input_type))
    except Exception as e:
        context.output = e


@when(r"I serialize as option of (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize_option(context: typing.Any, input_type: str):
    ser = Serializer()
    ser.option(context.input, encoder_for(input_type))
    context.output = ser.output()


@when(r"I serialize nothing as option of (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize_none_option(context: typing.Any, input_type: str):
    ser = Serializer()
    ser.option(None, encoder_for(input_type))
    context.output = ser.output()


@when(r"I deserialize as option of (?P<input_type>[a-zA-Z0-9]+)")
def when_deserialize_option(context: typing.Any, input_type: str):
    des = Deserializer(context.input)
    try:
        context.output = des.option(decoder_for(input_type))
    except Exception as e:
        context.output = e


@when(r"I serialize as fixed bytes with length (?P<length>[0-9]+)")
def when_serialize_fixed_bytes(context: typing.Any, length: str):
    assert len(context.input) == int(length)
    ser = Serializer()
    ser.fixed_bytes(context.input)
    context.output = ser.output()


@when(r"I deserialize as fixed bytes with length (?P<length>[0-9]+)")
def when_deserialize_fixed_bytes(context: typing.Any, length: str):
    try:
        des = Deserializer(context.input)
        context.output = des.fixed_bytes(int(length))
    except Exception as e:
        context.output = e


@then(r"the deserialization should fail")
def then_fail_deserialization(context: typing.Any):
    assert isinstance(context.output, Exception)


@then(r"the serialization should fail")
def then_fail_serialization(context: typing.Any):
    assert isinstance(context.output, Exception)


@then(r"the result should be nothing")
def then_result_none(context: typing.Any):
    assert context.output is None, "Expected nothing but got " + str(context.output)
