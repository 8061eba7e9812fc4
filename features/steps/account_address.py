from behave import *

from aptos_core.account_address import AccountAddress
from aptos_core.bcs import Serializer

# Use regular expressions
use_step_matcher("re")


@when("I parse the account address")
def when_parse_account_address(context):
    try:
        context.output = AccountAddress.from_str_relaxed(context.input)
    except Exception as e:
        context.output = e


@when("I strictly parse the account address")
def when_strictly_parse_account_address(context):
    try:
        context.output = AccountAddress.from_str(context.input)
    except Exception as e:
        context.output = e


@when("I convert the address to a string")
def when_account_address_to_string(context):
    context.output = str(context.input)


@when("I convert the address to a string long")
def when_account_address_to_string_long(context):
    context.output = context.input.to_long_string()


@when("I serialize the address")
def when_serialize_account_address(context):
    ser = Serializer()
    ser.struct(context.input)
    context.output = ser.output()


@then("I should fail to parse the account address")
def then_fail_account_address(context):
    assert isinstance(context.output, Exception)
