# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Binary Canonical Serialization (BCS) for the Aptos core library.

BCS is the deterministic, non-self-describing binary format used for every
on-chain artifact: transaction signatures and account addresses are computed
over BCS bytes, so two structurally equal values must always produce the same
byte sequence.

Learn more at https://github.com/diem/bcs

The module contains:
- Protocol interfaces for serializable and deserializable objects
- Deserializer class for reading BCS-encoded data
- Serializer class for writing BCS-encoded data
- The error hierarchy shared by both directions
- Top level helpers :func:`encode`, :func:`decode` and :func:`encoder`

Both the serializer and the deserializer carry a *sticky* error. The first
failure is recorded and raised; once recorded, every later read returns a
zero value and every later write is dropped, so a caller that catches the
exception can still inspect :meth:`Deserializer.error` and the position where
decoding stopped.

Examples:
    Basic serialization::

        from aptos_core.bcs import Serializer, Deserializer

        ser = Serializer()
        ser.str("hello")
        data = ser.output()

        der = Deserializer(data)
        result = der.str()  # "hello"

    Working with custom structures::

        class MyStruct:
            def serialize(self, serializer):
                serializer.str(self.name)
                serializer.u32(self.value)

            @staticmethod
            def deserialize(deserializer):
                name = deserializer.str()
                value = deserializer.u32()
                return MyStruct(name, value)

        data = encode(MyStruct("a", 1))
        value = decode(data, MyStruct)
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import Dict, List, Optional

from typing_extensions import Protocol

MAX_U8 = 2**8 - 1
MAX_U16 = 2**16 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1
MAX_U128 = 2**128 - 1
MAX_U256 = 2**256 - 1

# A uleb128 may span at most five bytes, enough for any u32.
MAX_ULEB128_SHIFT = 35


class BcsError(Exception):
    """Base class for every BCS encoding and decoding failure."""


class NotEnoughBytes(BcsError):
    """The input ended before the requested number of bytes could be read."""

    position: int
    requested: int
    remaining: int

    def __init__(self, position: int, requested: int, remaining: int):
        super().__init__(
            f"Unexpected end of input at offset {position}. "
            f"Requested: {requested}, found: {remaining}"
        )
        self.position = position
        self.requested = requested
        self.remaining = remaining


class RemainingBytes(BcsError):
    """Input was left over after a complete value was decoded."""

    remaining: int

    def __init__(self, remaining: int):
        super().__init__(f"{remaining} bytes remaining after decoding")
        self.remaining = remaining


class InvalidBool(BcsError):
    """A boolean byte was neither 0x00 nor 0x01."""

    position: int
    value: int

    def __init__(self, position: int, value: int):
        super().__init__(f"Unexpected boolean value {value} at offset {position}")
        self.position = position
        self.value = value


class InvalidUleb128(BcsError):
    """A uleb128 value did not terminate within five bytes."""

    position: int

    def __init__(self, position: int):
        super().__init__(f"Invalid uleb128 encoding starting at offset {position}")
        self.position = position


class Overflow(BcsError):
    """A value does not fit in the requested integer width."""

    kind: str
    value: int

    def __init__(self, kind: str, value: int):
        super().__init__(f"Cannot encode {value} into {kind}")
        self.kind = kind
        self.value = value


class InvalidOptionLen(BcsError):
    """An option tag was neither 0 (none) nor 1 (some)."""

    position: int
    value: int

    def __init__(self, position: int, value: int):
        super().__init__(f"Invalid option tag {value} at offset {position}")
        self.position = position
        self.value = value


class InvalidVariant(BcsError):
    """A tagged union carried a variant index that is not defined for it."""

    kind: str
    tag: int

    def __init__(self, kind: str, tag: int):
        super().__init__(f"Invalid variant {tag} for {kind}")
        self.kind = kind
        self.tag = tag


class LengthOutOfBounds(BcsError):
    """A declared length fell outside the bounds allowed for a field.

    Attributes:
        kind: Name of the field being decoded.
        actual: The declared length read from the input.
        min: Smallest permitted length.
        max: Largest permitted length.
    """

    kind: str
    actual: int
    min: int
    max: int

    def __init__(self, kind: str, actual: int, min: int, max: int):
        super().__init__(
            f"Length {actual} of {kind} is outside of the bounds [{min}, {max}]"
        )
        self.kind = kind
        self.actual = actual
        self.min = min
        self.max = max


class UnsortedMapKeys(BcsError):
    """A map key was not strictly greater than the previous key's encoding."""

    position: int

    def __init__(self, position: int):
        super().__init__(f"Map key at offset {position} is duplicate or out of order")
        self.position = position


class NilValue(BcsError):
    """A required value was None."""

    kind: str

    def __init__(self, kind: str):
        super().__init__(f"Cannot serialize a missing {kind}")
        self.kind = kind


class Deserializable(Protocol):
    """Protocol for objects that can be deserialized from a BCS byte stream.

    Classes implementing this protocol provide a ``deserialize`` static method
    reading from a :class:`Deserializer`; ``from_bytes`` is derived from it and
    rejects trailing input.

    Examples:
        Implementing a deserializable class::

            class MyClass:
                def __init__(self, value: str):
                    self.value = value

                @staticmethod
                def deserialize(deserializer: Deserializer) -> 'MyClass':
                    return MyClass(deserializer.str())

            obj = MyClass.from_bytes(b'\x05hello')
    """

    @classmethod
    def from_bytes(cls, indata: bytes) -> Deserializable:
        """Create an instance of this class from BCS-encoded bytes.

        Args:
            indata: The BCS-encoded byte data to deserialize.

        Returns:
            An instance of the implementing class.

        Raises:
            BcsError: If the data is malformed or has trailing bytes.
        """
        return decode(indata, cls)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        """Deserialize an instance from a Deserializer."""
        ...


class Serializable(Protocol):
    """Protocol for objects that can be serialized into a BCS byte stream.

    Classes implementing this protocol write their fields, in declaration
    order, to a :class:`Serializer` from ``serialize``; ``to_bytes`` is derived
    from it.

    Examples:
        Implementing a serializable class::

            class MyClass:
                def __init__(self, value: str):
                    self.value = value

                def serialize(self, serializer: Serializer):
                    serializer.str(self.value)

            data = MyClass("hello").to_bytes()
    """

    def to_bytes(self) -> bytes:
        """Convert this object to BCS-encoded bytes.

        Returns:
            The BCS-encoded representation of this object as bytes.

        Raises:
            BcsError: If any field cannot be serialized.
        """
        return encode(self)

    def serialize(self, serializer: Serializer):
        """Serialize this object using the provided Serializer."""
        ...


class Deserializer:
    """A BCS deserializer for reading data from a byte stream.

    The Deserializer keeps a cursor into the input and a sticky error. Reads
    that would run past the end of the input fail with :class:`NotEnoughBytes`
    before anything is consumed; declared lengths are checked against the
    remaining input (and, for the bounded helpers, against caller supplied
    limits) before the payload is read.

    Attributes:
        _input: Internal BytesIO stream for reading data.
        _length: Total length of the input data.
        _error: The first error encountered, if any.

    Examples:
        Basic usage::

            der = Deserializer(b'\x01\x05hello')
            flag = der.bool()    # True
            text = der.str()     # "hello"

        Reading collections::

            values = der.sequence(Deserializer.str)
            mapping = der.map(Deserializer.str, Deserializer.u32)

        Observing the sticky error::

            der = Deserializer(b'\x01')
            try:
                der.u64()
            except NotEnoughBytes:
                pass
            der.u8()      # 0, the read is a no-op
            der.error()   # the NotEnoughBytes instance
    """

    _input: io.BytesIO
    _length: int
    _error: Optional[BcsError]

    def __init__(self, data: bytes):
        """Initialize the deserializer with byte data.

        Args:
            data: The BCS-encoded bytes to deserialize from.
        """
        self._length = len(data)
        self._input = io.BytesIO(data)
        self._error = None

    def position(self) -> int:
        """Offset of the next byte to be read."""
        return self._input.tell()

    def remaining(self) -> int:
        """Get the number of bytes remaining in the input stream.

        Returns:
            The number of unread bytes remaining in the stream.
        """
        return self._length - self._input.tell()

    def error(self) -> Optional[BcsError]:
        """The first error this deserializer encountered, or None."""
        return self._error

    def fail(self, error: BcsError) -> BcsError:
        """Record ``error`` unless an earlier one is already recorded.

        Returns the error so callers can ``raise der.fail(...)``.
        """
        if self._error is None:
            self._error = error
        return error

    def bool(self) -> bool:
        """Read a boolean value from the stream.

        BCS encodes booleans as a single byte: 0 for False, 1 for True.

        Returns:
            The deserialized boolean value.

        Raises:
            InvalidBool: If the byte value is not 0 or 1.
            NotEnoughBytes: If the input is exhausted.
        """
        position = self.position()
        value = self._read_int(1)
        if value == 0:
            return False
        elif value == 1:
            return True
        raise self.fail(InvalidBool(position, value))

    def to_bytes(self) -> bytes:
        """Read a byte array from the stream.

        BCS encodes byte arrays as a ULEB128 length followed by the raw bytes.
        The length is compared with the remaining input before reading.

        Returns:
            The deserialized byte array.

        Raises:
            NotEnoughBytes: If the declared length exceeds the remaining input.
        """
        return self._read(self.uleb128())

    def fixed_bytes(self, length: int) -> bytes:
        """Read a fixed-length byte array from the stream.

        Args:
            length: The exact number of bytes to read.

        Returns:
            The deserialized byte array of the specified length.
        """
        return self._read(length)

    def read_bounded_bytes(self, kind: str, min: int, max: int) -> bytes:
        """Read length-prefixed bytes whose length must lie in ``[min, max]``.

        The declared length is validated before any payload is read, so a
        hostile length prefix cannot force a large read.

        Args:
            kind: Name of the field, used in the error.
            min: Smallest permitted length.
            max: Largest permitted length.

        Returns:
            The bytes read.

        Raises:
            LengthOutOfBounds: If the declared length is outside the bounds.
            NotEnoughBytes: If the input is shorter than the declared length.
        """
        length = self.uleb128()
        if self._error is not None:
            return b""
        if length < min or length > max:
            raise self.fail(LengthOutOfBounds(kind, length, min, max))
        return self._read(length)

    def read_bounded_string(self, kind: str, min: int, max: int) -> str:
        """Like :meth:`read_bounded_bytes`, decoding the result as a string."""
        return _decode_str(self.read_bounded_bytes(kind, min, max))

    def map(
        self,
        key_decoder: typing.Callable[[Deserializer], typing.Any],
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> Dict[typing.Any, typing.Any]:
        """Read a map (dictionary) from the stream.

        BCS encodes maps as a ULEB128 length followed by key-value pairs
        sorted by the BCS encoding of the keys.

        Args:
            key_decoder: Function to decode each key from the stream.
            value_decoder: Function to decode each value from the stream.

        Returns:
            A dictionary containing the deserialized key-value pairs.

        Raises:
            UnsortedMapKeys: If an encoded key is not strictly greater than the
                one before it.

        Examples:
            Reading a map of string keys to u32 values::

                mapping = der.map(Deserializer.str, Deserializer.u32)
        """
        length = self.uleb128()
        values: Dict = {}
        previous: Optional[bytes] = None
        count = 0
        while count < length and self._error is None:
            start = self.position()
            key = key_decoder(self)
            encoded_key = self._input.getvalue()[start : self.position()]
            if previous is not None and encoded_key <= previous:
                raise self.fail(UnsortedMapKeys(start))
            previous = encoded_key
            values[key] = value_decoder(self)
            count += 1
        return values

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> List[typing.Any]:
        """Read a sequence (list) from the stream.

        BCS encodes sequences as a ULEB128 length followed by the elements.

        Args:
            value_decoder: Function to decode each element from the stream.

        Returns:
            A list containing the deserialized elements.

        Examples:
            Reading a sequence of strings::

                strings = der.sequence(Deserializer.str)
        """
        length = self.uleb128()
        values: List = []
        while len(values) < length and self._error is None:
            values.append(value_decoder(self))
        return values

    def option(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> typing.Any:
        """Read an optional value: a 0 or 1 tag followed by the value if 1.

        Returns:
            The decoded value, or None when the tag is 0.

        Raises:
            InvalidOptionLen: If the tag is anything but 0 or 1.
        """
        position = self.position()
        tag = self.uleb128()
        if tag == 0:
            return None
        if tag != 1:
            raise self.fail(InvalidOptionLen(position, tag))
        return value_decoder(self)

    def str(self) -> str:
        """Read a string from the stream.

        The bytes are not validated as UTF-8. Invalid sequences are carried
        through as surrogate escapes, so re-encoding the string reproduces the
        original bytes.

        Returns:
            The deserialized string.
        """
        return _decode_str(self.to_bytes())

    def struct(self, struct: typing.Any) -> typing.Any:
        """Deserialize a custom struct from the stream.

        Args:
            struct: A class or type that implements the `deserialize` method.

        Returns:
            The deserialized struct instance.
        """
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u16(self) -> int:
        return self._read_int(2)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def u128(self) -> int:
        return self._read_int(16)

    def u256(self) -> int:
        return self._read_int(32)

    def i8(self) -> int:
        return self._read_int(1, signed=True)

    def i16(self) -> int:
        return self._read_int(2, signed=True)

    def i32(self) -> int:
        return self._read_int(4, signed=True)

    def i64(self) -> int:
        return self._read_int(8, signed=True)

    def i128(self) -> int:
        return self._read_int(16, signed=True)

    def i256(self) -> int:
        return self._read_int(32, signed=True)

    def uleb128(self) -> int:
        """Read a ULEB128 (unsigned little-endian base 128) encoded integer.

        Each byte carries 7 bits of data, least significant group first, and
        the high bit marks continuation. At most five bytes are consumed.

        Returns:
            The decoded integer value (0-4294967295).

        Raises:
            InvalidUleb128: If the value does not terminate within five bytes.
            Overflow: If the decoded value exceeds the u32 range.
        """
        position = self.position()
        value = 0
        shift = 0

        while True:
            if shift >= MAX_ULEB128_SHIFT:
                raise self.fail(InvalidUleb128(position))
            byte = self._read_int(1)
            value |= (byte & 0x7F) << shift
            if byte & 0x80 == 0:
                break
            shift += 7

        if value > MAX_U32:
            raise self.fail(Overflow("uleb128", value))

        return value

    def _read(self, length: int) -> bytes:
        """Read a specified number of bytes from the input stream.

        After an error has been recorded this returns ``length`` zero bytes
        without touching the stream.

        Raises:
            NotEnoughBytes: If fewer than ``length`` bytes remain.
        """
        if self._error is not None:
            return bytes(length)
        remaining = self.remaining()
        if length > remaining:
            raise self.fail(NotEnoughBytes(self.position(), length, remaining))
        return self._input.read(length)

    def _read_int(self, length: int, signed: bool = False) -> int:
        """Read a little-endian integer of ``length`` bytes.

        Signed values are two's complement, so a set top bit means the
        magnitude is offset by 2^(8*length).
        """
        return int.from_bytes(self._read(length), byteorder="little", signed=signed)


class Serializer:
    """A BCS serializer for writing data to a byte stream.

    Integer writers check their range and raise :class:`Overflow`; once an
    error has been recorded every later write is dropped and :meth:`output`
    raises the recorded error.

    Attributes:
        _output: Internal BytesIO buffer for accumulating serialized data.
        _error: The first error encountered, if any.

    Examples:
        Basic usage::

            ser = Serializer()
            ser.bool(True)
            ser.str("hello")
            data = ser.output()

        Serializing collections::

            ser.sequence(["a", "b", "c"], Serializer.str)
            ser.map({"key": 42}, Serializer.str, Serializer.u32)
            ser.option(None, Serializer.u64)
    """

    _output: io.BytesIO
    _error: Optional[BcsError]

    def __init__(self):
        """Initialize a new serializer with an empty output buffer."""
        self._output = io.BytesIO()
        self._error = None

    def output(self) -> bytes:
        """Get the accumulated serialized data as bytes.

        Returns:
            The BCS-encoded bytes written to this serializer.

        Raises:
            BcsError: The recorded error if any write failed.
        """
        if self._error is not None:
            raise self._error
        return self._output.getvalue()

    def error(self) -> Optional[BcsError]:
        return self._error

    def fail(self, error: BcsError) -> BcsError:
        """Record ``error`` unless an earlier one is already recorded."""
        if self._error is None:
            self._error = error
        return error

    def bool(self, value: bool):
        """Write a boolean value as a single 0 or 1 byte."""
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        """Write a byte array to the stream.

        BCS encodes byte arrays as a ULEB128 length followed by the raw bytes.

        Args:
            value: The byte array to serialize.
        """
        self.uleb128(len(value))
        self.fixed_bytes(value)

    def fixed_bytes(self, value):
        """Write raw bytes without any length prefix."""
        if self._error is None:
            self._output.write(value)

    def map(
        self,
        values: typing.Dict[typing.Any, typing.Any],
        key_encoder: typing.Callable[[Serializer, typing.Any], None],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Write a map (dictionary) to the stream.

        BCS encodes maps as a ULEB128 length followed by key-value pairs.
        The pairs are sorted by the BCS encoding of the keys to ensure
        canonical ordering regardless of the dictionary's insertion order.

        Args:
            values: The dictionary to serialize.
            key_encoder: Function to encode each key.
            value_encoder: Function to encode each value.

        Examples:
            Serializing a map of string keys to u32 values::

                ser.map({"b": 2, "a": 1}, Serializer.str, Serializer.u32)
        """
        encoded_values = []
        for key, value in values.items():
            encoded_values.append(
                (encoder(key, key_encoder), encoder(value, value_encoder))
            )
        encoded_values.sort(key=lambda item: item[0])

        self.uleb128(len(encoded_values))
        for key, value in encoded_values:
            self.fixed_bytes(key)
            self.fixed_bytes(value)

    @staticmethod
    def sequence_serializer(
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Create a reusable sequence serializer function.

        Examples:
            Creating a string sequence serializer::

                str_seq = Serializer.sequence_serializer(Serializer.str)
                str_seq(ser, ["a", "b", "c"])
        """
        return lambda self, values: self.sequence(values, value_encoder)

    def sequence(
        self,
        values: typing.List[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Write a sequence (list) to the stream.

        BCS encodes sequences as a ULEB128 length followed by the elements.

        Args:
            values: The list of values to serialize.
            value_encoder: Function to encode each element.
        """
        self.uleb128(len(values))
        for value in values:
            self.fixed_bytes(encoder(value, value_encoder))

    def option(
        self,
        value: typing.Any,
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Write an optional value: tag 0 for None, else tag 1 and the value."""
        if value is None:
            self.uleb128(0)
        else:
            self.uleb128(1)
            value_encoder(self, value)

    def str(self, value: str):
        """Write a string as length-prefixed UTF-8 bytes.

        Strings produced by :meth:`Deserializer.str` from invalid UTF-8 are
        written back as their original bytes.
        """
        self.to_bytes(value.encode("utf-8", errors="surrogateescape"))

    def struct(self, value: typing.Any):
        """Serialize a custom struct to the stream.

        Args:
            value: An object that implements the `serialize` method.

        Raises:
            NilValue: If ``value`` is None.
        """
        if value is None:
            raise self.fail(NilValue("struct"))
        value.serialize(self)

    def u8(self, value: int):
        self._write_int(value, 1, "u8", 0, MAX_U8)

    def u16(self, value: int):
        self._write_int(value, 2, "u16", 0, MAX_U16)

    def u32(self, value: int):
        self._write_int(value, 4, "u32", 0, MAX_U32)

    def u64(self, value: int):
        self._write_int(value, 8, "u64", 0, MAX_U64)

    def u128(self, value: int):
        self._write_int(value, 16, "u128", 0, MAX_U128)

    def u256(self, value: int):
        self._write_int(value, 32, "u256", 0, MAX_U256)

    def i8(self, value: int):
        self._write_signed(value, 1, "i8")

    def i16(self, value: int):
        self._write_signed(value, 2, "i16")

    def i32(self, value: int):
        self._write_signed(value, 4, "i32")

    def i64(self, value: int):
        self._write_signed(value, 8, "i64")

    def i128(self, value: int):
        self._write_signed(value, 16, "i128")

    def i256(self, value: int):
        self._write_signed(value, 32, "i256")

    def uleb128(self, value: int):
        """Write a ULEB128 (unsigned little-endian base 128) encoded integer.

        Args:
            value: The integer value to encode (0-4294967295).

        Raises:
            Overflow: If the value is outside the u32 range.
        """
        if value < 0 or value > MAX_U32:
            raise self.fail(Overflow("uleb128", value))

        while value >= 0x80:
            # Write 7 (lowest) bits of data and set the 8th bit to 1.
            byte = value & 0x7F
            self.u8(byte | 0x80)
            value >>= 7

        # Write the remaining bits of data and set the highest bit to 0.
        self.u8(value & 0x7F)

    def _write_signed(self, value: int, length: int, kind: str):
        bound = 2 ** (8 * length - 1)
        self._write_int(value, length, kind, -bound, bound - 1, signed=True)

    def _write_int(
        self,
        value: int,
        length: int,
        kind: Optional[str] = None,
        low: int = 0,
        high: Optional[int] = None,
        signed: bool = False,
    ):
        """Write an integer of ``length`` bytes, little-endian.

        Raises:
            Overflow: If ``value`` is outside ``[low, high]``.
        """
        if high is not None and (value < low or value > high):
            raise self.fail(Overflow(kind or f"{length * 8}-bit integer", value))
        if self._error is None:
            self._output.write(value.to_bytes(length, "little", signed=signed))


def _decode_str(value: bytes) -> str:
    return value.decode("utf-8", errors="surrogateescape")


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value using the specified encoder function.

    Examples:
        Encoding a string::

            data = encoder("hello", Serializer.str)
    """
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


def encode(value: typing.Any) -> bytes:
    """Encode a struct implementing ``serialize`` into BCS bytes.

    Raises:
        NilValue: If ``value`` is None.
        BcsError: If any field fails to encode.
    """
    ser = Serializer()
    ser.struct(value)
    return ser.output()


def decode(data: bytes, struct: typing.Any) -> typing.Any:
    """Decode ``data`` as a single ``struct`` value, consuming all input.

    Args:
        data: The BCS-encoded bytes.
        struct: A class implementing ``deserialize``.

    Returns:
        The decoded value.

    Raises:
        RemainingBytes: If bytes are left over after the value.
        BcsError: If the value itself fails to decode.
    """
    der = Deserializer(data)
    value = der.struct(struct)
    if der.remaining() > 0:
        raise der.fail(RemainingBytes(der.remaining()))
    return value


class Test(unittest.TestCase):
    def test_bool_true(self):
        in_value = True

        ser = Serializer()
        ser.bool(in_value)
        der = Deserializer(ser.output())
        out_value = der.bool()

        self.assertEqual(in_value, out_value)

    def test_bool_false(self):
        in_value = False

        ser = Serializer()
        ser.bool(in_value)
        der = Deserializer(ser.output())
        out_value = der.bool()

        self.assertEqual(in_value, out_value)

    def test_bool_error(self):
        der = Deserializer(b"\x20")
        with self.assertRaises(InvalidBool) as cm:
            der.bool()
        self.assertEqual(cm.exception.value, 32)
        self.assertEqual(cm.exception.position, 0)

    def test_bytes(self):
        in_value = b"1234567890"

        ser = Serializer()
        ser.to_bytes(in_value)
        der = Deserializer(ser.output())
        out_value = der.to_bytes()

        self.assertEqual(in_value, out_value)

    def test_bytes_length_exceeds_input(self):
        der = Deserializer(b"\x0a\x01\x02")
        with self.assertRaises(NotEnoughBytes) as cm:
            der.to_bytes()
        self.assertEqual(cm.exception.requested, 10)
        self.assertEqual(cm.exception.remaining, 2)
        self.assertEqual(cm.exception.position, 1)

    def test_map(self):
        in_value = {"a": 12345, "b": 99234, "c": 23829}

        ser = Serializer()
        ser.map(in_value, Serializer.str, Serializer.u32)
        der = Deserializer(ser.output())
        out_value = der.map(Deserializer.str, Deserializer.u32)

        self.assertEqual(in_value, out_value)

    def test_map_sorted_by_encoded_key(self):
        ser = Serializer()
        ser.map({"c": 3, "a": 1, "b": 2}, Serializer.str, Serializer.u8)
        self.assertEqual(
            ser.output(), bytes([3, 1, 0x61, 1, 1, 0x62, 2, 1, 0x63, 3])
        )

    def test_map_rejects_duplicate_and_unsorted_keys(self):
        duplicate = bytes([2, 1, 0x61, 1, 1, 0x61, 2])
        with self.assertRaises(UnsortedMapKeys) as cm:
            Deserializer(duplicate).map(Deserializer.str, Deserializer.u8)
        self.assertEqual(cm.exception.position, 4)

        unsorted = bytes([2, 1, 0x62, 2, 1, 0x61, 1])
        der = Deserializer(unsorted)
        with self.assertRaises(UnsortedMapKeys):
            der.map(Deserializer.str, Deserializer.u8)
        self.assertIsInstance(der.error(), UnsortedMapKeys)

    def test_sequence(self):
        in_value = ["a", "abc", "def", "ghi"]

        ser = Serializer()
        ser.sequence(in_value, Serializer.str)
        der = Deserializer(ser.output())
        out_value = der.sequence(Deserializer.str)

        self.assertEqual(in_value, out_value)

    def test_sequence_serializer(self):
        in_value = ["a", "abc", "def", "ghi"]

        ser = Serializer()
        seq_ser = Serializer.sequence_serializer(Serializer.str)
        seq_ser(ser, in_value)
        der = Deserializer(ser.output())
        out_value = der.sequence(Deserializer.str)

        self.assertEqual(in_value, out_value)

    def test_option(self):
        ser = Serializer()
        ser.option(None, Serializer.u64)
        ser.option(7, Serializer.u64)
        self.assertEqual(ser.output(), b"\x00\x01" + (7).to_bytes(8, "little"))

        der = Deserializer(ser.output())
        self.assertIsNone(der.option(Deserializer.u64))
        self.assertEqual(der.option(Deserializer.u64), 7)

    def test_option_invalid_tag(self):
        der = Deserializer(b"\x02\x00")
        with self.assertRaises(InvalidOptionLen) as cm:
            der.option(Deserializer.u8)
        self.assertEqual(cm.exception.value, 2)

    def test_str(self):
        in_value = "1234567890"

        ser = Serializer()
        ser.str(in_value)
        der = Deserializer(ser.output())
        out_value = der.str()

        self.assertEqual(in_value, out_value)

    def test_str_without_utf8_validation(self):
        raw = b"\x03\xff\xfe\x41"
        der = Deserializer(raw)
        value = der.str()

        ser = Serializer()
        ser.str(value)
        self.assertEqual(ser.output(), raw)

    def test_u8(self):
        in_value = 15

        ser = Serializer()
        ser.u8(in_value)
        der = Deserializer(ser.output())
        out_value = der.u8()

        self.assertEqual(in_value, out_value)

    def test_u16(self):
        in_value = 11115

        ser = Serializer()
        ser.u16(in_value)
        der = Deserializer(ser.output())
        out_value = der.u16()

        self.assertEqual(in_value, out_value)

    def test_u32(self):
        in_value = 1111111115

        ser = Serializer()
        ser.u32(in_value)
        der = Deserializer(ser.output())
        out_value = der.u32()

        self.assertEqual(in_value, out_value)

    def test_u64(self):
        in_value = 1111111111111111115

        ser = Serializer()
        ser.u64(in_value)
        der = Deserializer(ser.output())
        out_value = der.u64()

        self.assertEqual(in_value, out_value)

    def test_u128(self):
        in_value = 1111111111111111111111111111111111115

        ser = Serializer()
        ser.u128(in_value)
        der = Deserializer(ser.output())
        out_value = der.u128()

        self.assertEqual(in_value, out_value)

    def test_u256(self):
        in_value = 111111111111111111111111111111111111111111111111111111111111111111111111111115

        ser = Serializer()
        ser.u256(in_value)
        der = Deserializer(ser.output())
        out_value = der.u256()

        self.assertEqual(in_value, out_value)

    def test_unsigned_overflow(self):
        ser = Serializer()
        with self.assertRaises(Overflow) as cm:
            ser.u8(256)
        self.assertEqual(cm.exception.kind, "u8")

        ser = Serializer()
        with self.assertRaises(Overflow):
            ser.u64(-1)

    def test_signed_integers(self):
        ser = Serializer()
        ser.i8(-1)
        ser.i16(-2)
        ser.i32(2**31 - 1)
        ser.i64(-(2**63))
        ser.i128(-5)
        ser.i256(-(2**255))
        data = ser.output()

        self.assertEqual(data[0:1], b"\xff")
        self.assertEqual(data[1:3], b"\xfe\xff")

        der = Deserializer(data)
        self.assertEqual(der.i8(), -1)
        self.assertEqual(der.i16(), -2)
        self.assertEqual(der.i32(), 2**31 - 1)
        self.assertEqual(der.i64(), -(2**63))
        self.assertEqual(der.i128(), -5)
        self.assertEqual(der.i256(), -(2**255))

    def test_signed_overflow(self):
        ser = Serializer()
        with self.assertRaises(Overflow):
            ser.i8(128)

    def test_uleb128(self):
        in_value = 1111111115

        ser = Serializer()
        ser.uleb128(in_value)
        der = Deserializer(ser.output())
        out_value = der.uleb128()

        self.assertEqual(in_value, out_value)

    def test_uleb128_boundaries(self):
        cases = [
            (0x00, b"\x00"),
            (0x7F, b"\x7f"),
            (0x80, b"\x80\x01"),
            (0x3FFF, b"\xff\x7f"),
            (0xFFFFFFFF, b"\xff\xff\xff\xff\x0f"),
        ]
        for value, expected in cases:
            self.assertEqual(encoder(value, Serializer.uleb128), expected)
            self.assertEqual(Deserializer(expected).uleb128(), value)

    def test_uleb128_too_many_bytes(self):
        der = Deserializer(b"\x80" * 6)
        with self.assertRaises(InvalidUleb128):
            der.uleb128()

    def test_uleb128_overflow(self):
        der = Deserializer(b"\xff\xff\xff\xff\x1f")
        with self.assertRaises(Overflow):
            der.uleb128()

        with self.assertRaises(Overflow):
            Serializer().uleb128(MAX_U32 + 1)

    def test_sticky_deserializer(self):
        der = Deserializer(b"\x01\x02")
        with self.assertRaises(NotEnoughBytes) as cm:
            der.u64()
        self.assertIs(der.error(), cm.exception)

        self.assertEqual(der.u8(), 0)
        self.assertEqual(der.u64(), 0)
        self.assertEqual(der.to_bytes(), b"")
        self.assertEqual(der.fixed_bytes(4), b"\x00" * 4)
        self.assertFalse(der.bool())
        self.assertEqual(der.sequence(Deserializer.u8), [])
        self.assertIs(der.error(), cm.exception)
        self.assertEqual(der.remaining(), 2)

    def test_sticky_serializer(self):
        ser = Serializer()
        ser.u8(1)
        with self.assertRaises(Overflow) as cm:
            ser.u16(2**16)
        ser.u8(2)
        self.assertIs(ser.error(), cm.exception)
        with self.assertRaises(Overflow):
            ser.output()

    def test_bounded_bytes(self):
        der = Deserializer(b"\x03abc")
        self.assertEqual(der.read_bounded_bytes("field", 1, 3), b"abc")

        der = Deserializer(b"\x05abcde")
        with self.assertRaises(LengthOutOfBounds) as cm:
            der.read_bounded_bytes("field", 1, 4)
        self.assertEqual(cm.exception.actual, 5)
        self.assertEqual(cm.exception.max, 4)
        # The payload was not consumed.
        self.assertEqual(der.position(), 1)

    def test_bounded_string(self):
        der = Deserializer(b"\x02hi")
        self.assertEqual(der.read_bounded_string("name", 1, 8), "hi")

        der = Deserializer(b"\x00")
        with self.assertRaises(LengthOutOfBounds):
            der.read_bounded_string("name", 1, 8)

    def test_nil_struct(self):
        with self.assertRaises(NilValue):
            encode(None)

    def test_decode_rejects_trailing_bytes(self):
        class Byte:
            def __init__(self, value):
                self.value = value

            def serialize(self, serializer: Serializer):
                serializer.u8(self.value)

            @staticmethod
            def deserialize(deserializer: Deserializer):
                return Byte(deserializer.u8())

        self.assertEqual(encode(Byte(9)), b"\x09")
        self.assertEqual(decode(b"\x09", Byte).value, 9)
        with self.assertRaises(RemainingBytes) as cm:
            decode(b"\x09\x00\x00", Byte)
        self.assertEqual(cm.exception.remaining, 2)


if __name__ == "__main__":
    unittest.main()
