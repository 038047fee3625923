# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Account identifiers and their checksummed text encoding.

An account is identified by 32 raw bytes. For a single-key account those
bytes are the Ed25519 public key itself; for a multisig account they are the
SHA-512/256 digest of the group preimage (see :mod:`multisig_sdk.multisig`).

The text form is the base32 encoding (RFC 4648 alphabet, upper case, padding
removed) of the 32 identifier bytes followed by a 4-byte checksum, where the
checksum is the last 4 bytes of SHA-512/256 over the identifier. Every
identifier therefore encodes to exactly 58 characters.

Examples:
    Encoding and parsing::

        addr = AccountAddress.from_key(public_key)
        text = str(addr)
        assert AccountAddress.from_str(text) == addr

    A mistyped character is caught by the checksum::

        try:
            AccountAddress.from_str(text[:-1] + "A")
        except ParseAddressError as e:
            print(f"Failed to parse address: {e}")
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import unittest

from . import asymmetric_crypto
from .bcs import Deserializable, Deserializer, Serializable, Serializer


def sha512_256(data: bytes) -> bytes:
    """SHA-512/256 digest of ``data``, the hash used for identifiers and checksums."""
    hasher = hashlib.new("sha512_256")
    hasher.update(data)
    return hasher.digest()


class ParseAddressError(Exception):
    """Raised when text or bytes cannot be parsed into an :class:`AccountAddress`.

    Typical causes are a wrong length, characters outside the base32 alphabet
    or a checksum that does not match the identifier.
    """


class AccountAddress(Deserializable, Serializable):
    """A 32-byte account identifier.

    Attributes:
        address: The raw 32 identifier bytes.
        LENGTH: The required byte length of identifiers (32).
        CHECKSUM_LENGTH: Bytes of checksum appended before encoding (4).
        ENCODED_LENGTH: Characters in the text encoding (58).
    """

    address: bytes
    LENGTH: int = 32
    CHECKSUM_LENGTH: int = 4
    ENCODED_LENGTH: int = 58

    def __init__(self, address: bytes):
        """
        :param address: The 32 identifier bytes
        :raises ParseAddressError: If ``address`` is not exactly 32 bytes
        """
        if len(address) != AccountAddress.LENGTH:
            raise ParseAddressError(
                f"Expected address of length {AccountAddress.LENGTH}, got {len(address)}"
            )
        self.address = bytes(address)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAddress):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        return self.encoded_address()

    def __repr__(self):
        return self.__str__()

    def checksum(self) -> bytes:
        return sha512_256(self.address)[-AccountAddress.CHECKSUM_LENGTH :]

    def encoded_address(self) -> str:
        """The checksummed, human-readable form of this identifier."""
        encoded = base64.b32encode(self.address + self.checksum()).decode()
        return encoded.rstrip("=")

    @staticmethod
    def from_str(address: str) -> AccountAddress:
        """Parse the checksummed text form.

        Args:
            address: A 58 character base32 string.

        Returns:
            The decoded identifier.

        Raises:
            ParseAddressError: If the length, alphabet or checksum is wrong.
        """
        if len(address) != AccountAddress.ENCODED_LENGTH:
            raise ParseAddressError(
                f"Encoded address must be {AccountAddress.ENCODED_LENGTH} "
                f"characters, got {len(address)}"
            )

        # Restore the padding stripped during encoding.
        padding = "=" * (-len(address) % 8)
        try:
            decoded = base64.b32decode(address + padding)
        except (binascii.Error, ValueError) as e:
            raise ParseAddressError(f"Invalid base32 address {address}: {e}")

        out = AccountAddress(decoded[: AccountAddress.LENGTH])
        if out.checksum() != decoded[AccountAddress.LENGTH :]:
            raise ParseAddressError(f"Checksum mismatch for address {address}")
        # Trailing bits past the checksum must be zero.
        if out.encoded_address() != address:
            raise ParseAddressError(f"Address {address} is not canonically encoded")
        return out

    @staticmethod
    def is_valid(address: str) -> bool:
        try:
            AccountAddress.from_str(address)
        except ParseAddressError:
            return False
        return True

    @staticmethod
    def from_key(key: asymmetric_crypto.PublicKey) -> AccountAddress:
        """The address of a single-key account, which is the raw public key."""
        return AccountAddress(key.to_crypto_bytes())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AccountAddress:
        return AccountAddress(deserializer.fixed_bytes(AccountAddress.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


class Test(unittest.TestCase):
    def test_zero_address(self):
        addr = AccountAddress(bytes(32))
        self.assertEqual(
            str(addr), "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAY5HFKQ"
        )

    def test_encode_public_key(self):
        addr = AccountAddress(
            bytes.fromhex(
                "754bb6a4720a658bdd5f532995955db0971ad3519acbde2f1149c3857348006c"
            )
        )
        self.assertEqual(
            addr.encoded_address(),
            "OVF3NJDSBJSYXXK7KMUZLFK5WCLRVU2RTLF54LYRJHBYK42IABWOTV3LAI",
        )

    def test_decode(self):
        addr = AccountAddress.from_str(
            "DN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA"
        )
        self.assertEqual(
            addr.address.hex(),
            "1b7ec0b04bea61b7969097e6cbf407e108a705351d0bc98abeb12209a8ab8178",
        )
        self.assertEqual(
            str(addr), "DN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA"
        )

    def test_bad_checksum(self):
        with self.assertRaisesRegex(ParseAddressError, "Checksum mismatch"):
            AccountAddress.from_str(
                "EN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA"
            )
        self.assertFalse(
            AccountAddress.is_valid(
                "EN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA"
            )
        )

    def test_non_canonical_trailing_bits(self):
        with self.assertRaisesRegex(ParseAddressError, "not canonically encoded"):
            AccountAddress.from_str(
                "DN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTB"
            )

    def test_bad_length(self):
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str("DN7MBMCL5JQ3")
        with self.assertRaises(ParseAddressError):
            AccountAddress(b"\x00" * 31)

    def test_bad_alphabet(self):
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str("1" * AccountAddress.ENCODED_LENGTH)

    def test_non_ascii(self):
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str("\u00e9" * AccountAddress.ENCODED_LENGTH)
        self.assertFalse(
            AccountAddress.is_valid("\u00e9" * AccountAddress.ENCODED_LENGTH)
        )

    def test_serialization(self):
        addr = AccountAddress(bytes(range(32)))
        ser = Serializer()
        addr.serialize(ser)
        self.assertEqual(ser.output(), bytes(range(32)))
        self.assertEqual(AccountAddress.deserialize(Deserializer(ser.output())), addr)


if __name__ == "__main__":
    unittest.main()
