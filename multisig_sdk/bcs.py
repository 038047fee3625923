# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Binary canonical serialization for multisig transactions and authorizations.

Every value that gets signed or shipped between co-signers is written through
this module so that two independent parties always produce the same bytes for
the same value. The format follows BCS (https://github.com/diem/bcs):
little-endian fixed width integers, ULEB128 lengths, length prefixed byte
strings and sequences, and a one byte tag for optional values.

Examples:
    Writing and reading back a partial authorization slot::

        ser = Serializer()
        ser.fixed_bytes(public_key_bytes)
        ser.option(signature_bytes, Serializer.to_bytes)

        der = Deserializer(ser.output())
        key = der.fixed_bytes(32)
        signature = der.option(Deserializer.to_bytes)
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import List, Optional

from typing_extensions import Protocol

MAX_U8 = 2**8 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1


class Deserializable(Protocol):
    """Objects that can be rebuilt from a BCS byte stream."""

    @classmethod
    def from_bytes(cls, indata: bytes) -> Deserializable:
        der = Deserializer(indata)
        return der.struct(cls)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        ...


class Serializable(Protocol):
    """Objects that can write themselves into a BCS byte stream."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Deserializer:
    """Reads BCS encoded values from a byte buffer.

    The deserializer keeps a cursor into the input and every read advances it.
    Reading past the end raises instead of returning short data, so a
    truncated transaction or authorization never decodes silently.
    """

    _input: io.BytesIO
    _length: int

    def __init__(self, data: bytes):
        self._length = len(data)
        self._input = io.BytesIO(data)

    def remaining(self) -> int:
        return self._length - self._input.tell()

    def bool(self) -> bool:
        value = int.from_bytes(self._read(1), byteorder="little", signed=False)
        if value == 0:
            return False
        elif value == 1:
            return True
        else:
            raise Exception("Unexpected boolean value: ", value)

    def to_bytes(self) -> bytes:
        return self._read(self.uleb128())

    def fixed_bytes(self, length: int) -> bytes:
        return self._read(length)

    def option(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> Optional[typing.Any]:
        """Read an optional value: a 0 tag for None, a 1 tag followed by the value."""
        if self.bool():
            return value_decoder(self)
        return None

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> List[typing.Any]:
        length = self.uleb128()
        values: List = []
        while len(values) < length:
            values.append(value_decoder(self))
        return values

    def str(self) -> str:
        return self.to_bytes().decode()

    def struct(self, struct: typing.Any) -> typing.Any:
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u64(self) -> int:
        return self._read_int(8)

    def uleb128(self) -> int:
        """Read a ULEB128 encoded length or variant tag.

        Raises:
            Exception: If the encoded value does not fit in a u32.
        """
        value = 0
        shift = 0

        while value <= MAX_U32:
            byte = self._read_int(1)
            value |= (byte & 0x7F) << shift
            if byte & 0x80 == 0:
                break
            shift += 7

        if value > MAX_U32:
            raise Exception("Unexpectedly large uleb128 value")

        return value

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            actual_length = 0 if value is None else len(value)
            error = (
                f"Unexpected end of input. Requested: {length}, found: {actual_length}"
            )
            raise Exception(error)
        return value

    def _read_int(self, length: int) -> int:
        return int.from_bytes(self._read(length), byteorder="little", signed=False)


class Serializer:
    """Writes BCS encoded values into an in-memory buffer.

    Examples:
        Encoding the fee fields of a transaction::

            ser = Serializer()
            ser.u64(fee)
            ser.u64(first_valid)
            ser.u64(last_valid)
            data = ser.output()
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def bool(self, value: bool):
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        """Write a ULEB128 length followed by the raw bytes."""
        self.uleb128(len(value))
        self._output.write(value)

    def fixed_bytes(self, value):
        """Write raw bytes with no length prefix."""
        self._output.write(value)

    def option(
        self,
        value: Optional[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        if value is None:
            self.bool(False)
        else:
            self.bool(True)
            value_encoder(self, value)

    def sequence(
        self,
        values: typing.Sequence[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        self.uleb128(len(values))
        for value in values:
            self.fixed_bytes(encoder(value, value_encoder))

    def str(self, value: str):
        self.to_bytes(value.encode())

    def struct(self, value: typing.Any):
        value.serialize(self)

    def u8(self, value: int):
        if value < 0 or value > MAX_U8:
            raise Exception(f"Cannot encode {value} into u8")

        self._write_int(value, 1)

    def u64(self, value: int):
        if value < 0 or value > MAX_U64:
            raise Exception(f"Cannot encode {value} into u64")

        self._write_int(value, 8)

    def uleb128(self, value: int):
        if value > MAX_U32:
            raise Exception(f"Cannot encode {value} into uleb128")

        while value >= 0x80:
            # Write 7 (lowest) bits of data and set the 8th bit to 1.
            byte = value & 0x7F
            self.u8(byte | 0x80)
            value >>= 7

        # Write the remaining bits of data and set the highest bit to 0.
        self.u8(value & 0x7F)

    def _write_int(self, value: int, length: int):
        self._output.write(value.to_bytes(length, "little", signed=False))


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value with ``encoder`` into a fresh buffer."""
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_bool_error(self):
        ser = Serializer()
        ser.u8(32)
        der = Deserializer(ser.output())
        with self.assertRaises(Exception):
            der.bool()

    def test_bytes(self):
        ser = Serializer()
        ser.to_bytes(b"1234567890")
        self.assertEqual(ser.output(), b"\x0a1234567890")
        der = Deserializer(ser.output())
        self.assertEqual(der.to_bytes(), b"1234567890")
        self.assertEqual(der.remaining(), 0)

    def test_option(self):
        ser = Serializer()
        ser.option(None, Serializer.u64)
        ser.option(7, Serializer.u64)
        self.assertEqual(ser.output(), bytes.fromhex("00010700000000000000"))
        der = Deserializer(ser.output())
        self.assertIsNone(der.option(Deserializer.u64))
        self.assertEqual(der.option(Deserializer.u64), 7)

    def test_sequence(self):
        in_value = ["a", "abc", "def", "ghi"]

        ser = Serializer()
        ser.sequence(in_value, Serializer.str)
        der = Deserializer(ser.output())
        out_value = der.sequence(Deserializer.str)

        self.assertEqual(in_value, out_value)

    def test_u64_little_endian(self):
        ser = Serializer()
        ser.u64(1)
        self.assertEqual(ser.output(), b"\x01" + b"\x00" * 7)

    def test_integer_range(self):
        ser = Serializer()
        with self.assertRaises(Exception):
            ser.u8(256)
        with self.assertRaises(Exception):
            ser.u64(-1)

    def test_uleb128(self):
        ser = Serializer()
        ser.uleb128(300)
        self.assertEqual(ser.output(), b"\xac\x02")
        der = Deserializer(ser.output())
        self.assertEqual(der.uleb128(), 300)

    def test_truncated_input(self):
        der = Deserializer(b"\x05abc")
        with self.assertRaisesRegex(Exception, "Unexpected end of input"):
            der.to_bytes()


if __name__ == "__main__":
    unittest.main()
