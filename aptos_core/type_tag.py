# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Move type tags.

A type tag names a Move type: the primitives, ``signer``, ``vector<T>`` and
structs such as ``0x1::coin::Coin<0x1::aptos_coin::AptosCoin>``. They appear
as the type arguments of entry functions and scripts.

Each tag encodes as its ULEB128 discriminator; vectors append the element
tag, structs append address, module, name and type arguments.

Examples:
    Building and parsing tags::

        coin = TypeTag.from_str("0x1::coin::Coin<0x1::aptos_coin::AptosCoin>")
        amounts = TypeTag(VectorTag(TypeTag(U64Tag())))
        assert str(amounts) == "vector<u64>"
"""

from __future__ import annotations

import typing
import unittest
from typing import List

from .account_address import AccountAddress
from .bcs import Deserializable, Deserializer, InvalidVariant, Serializable, Serializer


class TypeTag(Deserializable, Serializable):
    """Root of the Move type tags, a tagged union over the concrete tags.

    Attributes:
        value: The wrapped tag, whose ``variant()`` gives the discriminator
    """

    BOOL: int = 0
    U8: int = 1
    U64: int = 2
    U128: int = 3
    ACCOUNT_ADDRESS: int = 4
    SIGNER: int = 5
    VECTOR: int = 6
    STRUCT: int = 7
    U16: int = 8
    U32: int = 9
    U256: int = 10
    I8: int = 11
    I16: int = 12
    I32: int = 13
    I64: int = 14
    I128: int = 15
    I256: int = 16

    value: typing.Any

    def __init__(self, value: typing.Any):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeTag):
            return NotImplemented
        return (
            self.value.variant() == other.value.variant() and self.value == other.value
        )

    def __str__(self):
        return self.value.__str__()

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def from_str(type_tag: str) -> TypeTag:
        """Parse a type written the way Move prints it.

        Raises:
            ValueError: If the text is not a well-formed type.
        """
        parser = _TypeTagParser(type_tag)
        tag = parser.type_tag()
        parser.end()
        return tag

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TypeTag:
        variant = deserializer.uleb128()
        if variant == TypeTag.VECTOR:
            return TypeTag(VectorTag.deserialize(deserializer))
        if variant == TypeTag.STRUCT:
            return TypeTag(StructTag.deserialize(deserializer))
        primitive = _PRIMITIVES_BY_VARIANT.get(variant)
        if primitive is None:
            raise deserializer.fail(InvalidVariant("TypeTag", variant))
        return TypeTag(primitive())

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.value.variant())
        serializer.struct(self.value)


class PrimitiveTag(Deserializable, Serializable):
    """A tag with no payload: its discriminator is the whole encoding."""

    VARIANT: int
    NAME: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimitiveTag):
            return NotImplemented
        return self.variant() == other.variant()

    def __str__(self):
        return self.NAME

    def variant(self) -> int:
        return self.VARIANT

    @classmethod
    def deserialize(cls, deserializer: Deserializer) -> PrimitiveTag:
        return cls()

    def serialize(self, serializer: Serializer):
        pass


class BoolTag(PrimitiveTag):
    VARIANT = TypeTag.BOOL
    NAME = "bool"


class U8Tag(PrimitiveTag):
    VARIANT = TypeTag.U8
    NAME = "u8"


class U16Tag(PrimitiveTag):
    VARIANT = TypeTag.U16
    NAME = "u16"


class U32Tag(PrimitiveTag):
    VARIANT = TypeTag.U32
    NAME = "u32"


class U64Tag(PrimitiveTag):
    VARIANT = TypeTag.U64
    NAME = "u64"


class U128Tag(PrimitiveTag):
    VARIANT = TypeTag.U128
    NAME = "u128"


class U256Tag(PrimitiveTag):
    VARIANT = TypeTag.U256
    NAME = "u256"


class I8Tag(PrimitiveTag):
    VARIANT = TypeTag.I8
    NAME = "i8"


class I16Tag(PrimitiveTag):
    VARIANT = TypeTag.I16
    NAME = "i16"


class I32Tag(PrimitiveTag):
    VARIANT = TypeTag.I32
    NAME = "i32"


class I64Tag(PrimitiveTag):
    VARIANT = TypeTag.I64
    NAME = "i64"


class I128Tag(PrimitiveTag):
    VARIANT = TypeTag.I128
    NAME = "i128"


class I256Tag(PrimitiveTag):
    VARIANT = TypeTag.I256
    NAME = "i256"


class AccountAddressTag(PrimitiveTag):
    VARIANT = TypeTag.ACCOUNT_ADDRESS
    NAME = "address"


class SignerTag(PrimitiveTag):
    VARIANT = TypeTag.SIGNER
    NAME = "signer"


_PRIMITIVES: List[typing.Type[PrimitiveTag]] = [
    BoolTag,
    U8Tag,
    U16Tag,
    U32Tag,
    U64Tag,
    U128Tag,
    U256Tag,
    I8Tag,
    I16Tag,
    I32Tag,
    I64Tag,
    I128Tag,
    I256Tag,
    AccountAddressTag,
    SignerTag,
]
_PRIMITIVES_BY_VARIANT = {tag.VARIANT: tag for tag in _PRIMITIVES}
_PRIMITIVES_BY_NAME = {tag.NAME: tag for tag in _PRIMITIVES}


class VectorTag(Deserializable, Serializable):
    """``vector<T>`` for an element type ``T``."""

    value: TypeTag

    def __init__(self, value: TypeTag):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorTag):
            return NotImplemented
        return self.value == other.value

    def __str__(self):
        return f"vector<{self.value}>"

    def variant(self) -> int:
        return TypeTag.VECTOR

    @staticmethod
    def deserialize(deserializer: Deserializer) -> VectorTag:
        return VectorTag(deserializer.struct(TypeTag))

    def serialize(self, serializer: Serializer):
        serializer.struct(self.value)


class StructTag(Deserializable, Serializable):
    """A Move struct type: where it is published, its name and type arguments.

    Attributes:
        address: The account the module is published under.
        module: The module declaring the struct.
        name: The struct name.
        type_args: Type arguments of a generic struct, in order.
    """

    address: AccountAddress
    module: str
    name: str
    type_args: List[TypeTag]

    def __init__(
        self,
        address: AccountAddress,
        module: str,
        name: str,
        type_args: List[TypeTag],
    ):
        self.address = address
        self.module = module
        self.name = name
        self.type_args = type_args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructTag):
            return NotImplemented
        return (
            self.address == other.address
            and self.module == other.module
            and self.name == other.name
            and self.type_args == other.type_args
        )

    def __str__(self) -> str:
        value = f"{self.address}::{self.module}::{self.name}"
        if len(self.type_args) > 0:
            value += f"<{', '.join(str(type_arg) for type_arg in self.type_args)}>"
        return value

    @staticmethod
    def from_str(type_tag: str) -> StructTag:
        """Parse a struct type such as ``0x1::coin::Coin<0x1::aptos_coin::AptosCoin>``.

        Raises:
            ValueError: If the text is not a struct type.
        """
        tag = TypeTag.from_str(type_tag)
        if not isinstance(tag.value, StructTag):
            raise ValueError(f"Not a struct type: {type_tag}")
        return tag.value

    def variant(self) -> int:
        return TypeTag.STRUCT

    @staticmethod
    def deserialize(deserializer: Deserializer) -> StructTag:
        address = deserializer.struct(AccountAddress)
        module = deserializer.str()
        name = deserializer.str()
        type_args = deserializer.sequence(TypeTag.deserialize)
        return StructTag(address, module, name, type_args)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.address)
        serializer.str(self.module)
        serializer.str(self.name)
        serializer.sequence(self.type_args, Serializer.struct)


class _TypeTagParser:
    """Recursive descent over the tokens of a type string."""

    tokens: List[str]
    index: int

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0

    def end(self):
        if self.index != len(self.tokens):
            raise ValueError(f"Unexpected trailing input in type: {self.text}")

    def type_tag(self) -> TypeTag:
        name = self._next()
        if name == "vector":
            (element,) = self._type_args(expected=1)
            return TypeTag(VectorTag(element))
        if name in _PRIMITIVES_BY_NAME:
            return TypeTag(_PRIMITIVES_BY_NAME[name]())

        parts = name.split("::")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid type {name!r} in: {self.text}")
        address = AccountAddress.from_str_relaxed(parts[0])
        type_args = self._type_args() if self._peek() == "<" else []
        return TypeTag(StructTag(address, parts[1], parts[2], type_args))

    def _type_args(self, expected: typing.Optional[int] = None) -> List[TypeTag]:
        self._expect("<")
        type_args = [self.type_tag()]
        while self._peek() == ",":
            self._next()
            type_args.append(self.type_tag())
        self._expect(">")
        if expected is not None and len(type_args) != expected:
            raise ValueError(f"Expected {expected} type argument(s) in: {self.text}")
        return type_args

    def _peek(self) -> typing.Optional[str]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise ValueError(f"Unexpected end of type: {self.text}")
        self.index += 1
        return token

    def _expect(self, token: str):
        if self._next() != token:
            raise ValueError(f"Expected {token!r} in type: {self.text}")


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    name = ""
    for letter in text:
        if letter in "<>,":
            if name:
                tokens.append(name)
                name = ""
            tokens.append(letter)
        elif letter.isspace():
            if name:
                tokens.append(name)
                name = ""
        else:
            name += letter
    if name:
        tokens.append(name)
    return tokens


class Test(unittest.TestCase):
    def test_nested_structs(self):
        l0 = "0x0::l0::L0"
        l10 = "0x1::l10::L10"
        l20 = "0x2::l20::L20"
        l11 = "0x1::l11::L11"
        composite = f"{l0}<{l10}<{l20}>, {l11}>"
        derived = TypeTag.from_str(f"{l0}<{l10}<{l20}>,{l11}>")
        self.assertEqual(composite, f"{derived}")
        in_bytes = derived.to_bytes()
        self.assertEqual(derived, TypeTag.from_bytes(in_bytes))

    def test_primitive_encoding(self):
        self.assertEqual(TypeTag(BoolTag()).to_bytes(), b"\x00")
        self.assertEqual(TypeTag(U64Tag()).to_bytes(), b"\x02")
        self.assertEqual(TypeTag(AccountAddressTag()).to_bytes(), b"\x04")
        self.assertEqual(TypeTag(U256Tag()).to_bytes(), b"\x0a")
        self.assertEqual(TypeTag(I256Tag()).to_bytes(), b"\x10")
        self.assertEqual(TypeTag.from_bytes(b"\x0b"), TypeTag(I8Tag()))
        self.assertNotEqual(TypeTag(U8Tag()), TypeTag(I8Tag()))

    def test_vector(self):
        tag = TypeTag.from_str("vector<vector<u8>>")
        self.assertEqual(str(tag), "vector<vector<u8>>")
        self.assertEqual(tag.to_bytes(), b"\x06\x06\x01")
        self.assertEqual(TypeTag.from_bytes(b"\x06\x06\x01"), tag)

    def test_struct_encoding(self):
        tag = TypeTag.from_str("0x1::aptos_coin::AptosCoin")
        expected = (
            b"\x07"
            + b"\x00" * 31
            + b"\x01"
            + b"\x0aaptos_coin"
            + b"\x09AptosCoin"
            + b"\x00"
        )
        self.assertEqual(tag.to_bytes(), expected)
        self.assertEqual(str(tag), "0x1::aptos_coin::AptosCoin")

    def test_struct_with_vector_and_primitives(self):
        text = "0x1::pair::Pair<u64, vector<address>, 0x1::string::String>"
        struct = StructTag.from_str(text)
        self.assertEqual(str(struct), text)
        self.assertEqual(len(struct.type_args), 3)
        self.assertEqual(struct.type_args[0], TypeTag(U64Tag()))

    def test_parse_errors(self):
        for text in ["", "vector<u8", "0x1::coin", "u64 u8", "vector<u8, u16>", "<u8>"]:
            with self.assertRaises(ValueError, msg=text):
                TypeTag.from_str(text)
        with self.assertRaises(ValueError):
            StructTag.from_str("u64")

    def test_unknown_variant(self):
        with self.assertRaises(InvalidVariant):
            TypeTag.from_bytes(b"\x11")


if __name__ == "__main__":
    unittest.main()
