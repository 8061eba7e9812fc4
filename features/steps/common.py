import typing

from behave import given, step, then, use_step_matcher

from aptos_core.account_address import AccountAddress

# Use regular expressions
use_step_matcher("re")

INTEGER_TYPES = [
    "u8",
    "u16",
    "u32",
    "u64",
    "u128",
    "u256",
    "i8",
    "i16",
    "i32",
    "i64",
    "i128",
    "i256",
    "uleb128",
]


@given(r"(?P<input_type>[a-zA-Z0-9]+) (?P<input_value>\S+)")
def given_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_value(input_type, input_value)


@given(r"sequence of (?P<input_type>[a-zA-Z0-9]+) \[(?P<input_value>.*)]")
def given_sequence_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_sequence(input_type, input_value)


@then(
    r"the result should be (?P<expected_type>[a-zA-Z0-9]+) (?P<expected_value>\S+)"
)
def then_result(context: typing.Any, expected_type: str, expected_value: str):
    expected_val = parse_value(expected_type, expected_value)
    assert context.output == expected_val, (
        "Expected " + str(expected_value) + " but got " + str(context.output)
    )


@then(
    r"the result should be sequence of (?P<expected_type>[a-zA-Z0-9]+) \[(?P<expected_value>\S*)]"
)
def then_result_sequence(context: typing.Any, expected_type: str, expected_value: str):
    expected_val = parse_sequence(expected_type, expected_value)
    assert context.output == expected_val, (
        "Expected " + str(expected_val) + " but got " + str(context.output)
    )


@then(r"the error should be (?P<error_name>[a-zA-Z0-9]+)")
def then_error(context: typing.Any, error_name: str):
    assert isinstance(context.output, Exception), (
        "Expected " + error_name + " but got " + str(context.output)
    )
    assert type(context.output).__name__ == error_name, (
        "Expected " + error_name + " but got " + type(context.output).__name__
    )


@step(r"I use the output as input")
def use_output_as_input(context: typing.Any):
    context.input = context.output


def parse_value(input_type: str, input_value: str) -> typing.Any:
    if input_type == "bool":
        return parse_bool(input_value)
    elif input_type in INTEGER_TYPES:
        return int(input_value, 0)
    elif input_type == "address":
        return AccountAddress.from_str_relaxed(input_value)
    elif input_type == "bytes":
        return parse_hex(input_value)
    elif input_type == "string":
        return parse_string(input_value)
    else:
        raise Exception("Unrecognized input type")


def parse_sequence(input_type: str, input_value: str) -> typing.List[typing.Any]:
    vals: typing.List[typing.Any] = []

    # Skip early if there are no values
    if len(input_value) == 0:
        return vals

    for val in input_value.split(","):
        vals.append(parse_value(input_type, val))

    return vals


def parse_hex(input_value: str):
    return bytes.fromhex(input_value.removeprefix("0x"))


def parse_bool(input_value: str):
    return input_value == "true"


def parse_string(input_value: str):
    return input_value.removeprefix('"').removesuffix('"')
