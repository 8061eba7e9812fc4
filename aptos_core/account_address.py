# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Account addresses for the Aptos blockchain.

An address is a fixed 32-byte identifier for accounts, objects and resource
accounts. This module parses and formats addresses following AIP-40 and
derives the deterministic addresses of resource accounts and objects.

Key features:
- Relaxed parsing (optional ``0x``, left zero-padding) and strict AIP-40
  parsing
- AIP-40 formatting: special addresses (0x0 through 0xf) render in SHORT
  form, everything else in LONG form
- Derivation of resource account, named object, GUID object,
  object-from-object, token and collection addresses
- Byte-wise equality, ordering and hashing, so addresses can be sorted and
  used as dictionary keys

Every derived address is ``sha3_256(creator || seed || scheme)``, where the
scheme byte keeps the derivation schemes from colliding with one another and
with authentication keys.

Examples:
    Parsing and formatting::

        addr = AccountAddress.from_str_relaxed("1")
        str(addr)  # "0x1"

        addr = AccountAddress.from_str("0x" + "ab" * 32)

    Derived addresses::

        resource = AccountAddress.for_resource_account(creator, b"seed")
        obj = AccountAddress.for_named_object(creator, b"object_name")
        store = AccountAddress.for_object_from_object(owner, metadata)

See Also:
    AIP-40: https://github.com/aptos-foundation/AIPs/blob/main/aips/aip-40.md
"""

from __future__ import annotations

import unittest
from dataclasses import dataclass

from . import asymmetric_crypto, ed25519
from .bcs import Deserializer, Serializer
from .hashing import sha3_256


class AuthKeyScheme:
    """Scheme bytes appended to the hashed material when deriving addresses.

    Attributes:
        Ed25519: Single Ed25519 key authentication (0x00)
        MultiEd25519: Multi-signature Ed25519 authentication (0x01)
        SingleKey: Single key authentication wrapper (0x02)
        MultiKey: Multi-key authentication with threshold (0x03)
        DeriveObjectAddressFromObject: Object address derived from an object (0xFC)
        DeriveObjectAddressFromGuid: Object address from GUID (0xFD)
        DeriveObjectAddressFromSeed: Named object address from a seed (0xFE)
        DeriveResourceAccountAddress: Resource account address (0xFF)
    """

    Ed25519: bytes = b"\x00"
    MultiEd25519: bytes = b"\x01"
    SingleKey: bytes = b"\x02"
    MultiKey: bytes = b"\x03"
    DeriveObjectAddressFromObject: bytes = b"\xFC"
    DeriveObjectAddressFromGuid: bytes = b"\xFD"
    DeriveObjectAddressFromSeed: bytes = b"\xFE"
    DeriveResourceAccountAddress: bytes = b"\xFF"


class ParseAddressError(Exception):
    """Raised when a string or byte sequence is not a valid account address.

    Examples:
        Catching parse errors::

            try:
                addr = AccountAddress.from_str_relaxed("0xzz")
            except ParseAddressError as e:
                print(f"Failed to parse address: {e}")
    """


class AddressTooShort(ParseAddressError):
    """The hex string holds no digits after the optional 0x prefix."""


class AddressTooLong(ParseAddressError):
    """The hex string holds more than 64 digits."""

    length: int

    def __init__(self, length: int):
        super().__init__(
            f"Hex string is too long ({length} chars), must be 1 to 64 chars long, "
            "excluding the leading 0x."
        )
        self.length = length


class InvalidHex(ParseAddressError):
    """The string contains characters that are not hexadecimal digits."""


class NonStandardAddress(ParseAddressError):
    """The address is valid but not written in strict AIP-40 form."""


class AccountAddress:
    """A 32-byte account, object or resource address.

    Attributes:
        address: The raw 32-byte address data
        LENGTH: The required byte length of all addresses (32)

    Examples:
        Creating addresses::

            addr1 = AccountAddress.from_str("0x1")
            addr2 = AccountAddress.from_str_relaxed("abc123")
            addr3 = AccountAddress.from_key(public_key)
            addr4 = AccountAddress(b"\x00" * 32)

        Addresses sort and hash by their bytes::

            sorted([addr2, addr1]) == [addr1, addr2]
            {addr1: "core framework"}
    """

    address: bytes
    LENGTH: int = 32

    def __init__(self, address: bytes):
        """Initialize an AccountAddress with raw address bytes.

        Raises:
            ParseAddressError: If the address is not exactly 32 bytes.
        """
        self.address = address

        if len(address) != AccountAddress.LENGTH:
            raise ParseAddressError(
                f"Expected address of length 32, found {len(address)}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAddress):
            return NotImplemented
        return self.address == other.address

    def __lt__(self, other: AccountAddress) -> bool:
        if not isinstance(other, AccountAddress):
            return NotImplemented
        return self.address < other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        """AIP-40 representation: SHORT form for special addresses, else LONG.

        Examples:
            Formatting::

                str(AccountAddress(b"\x00" * 31 + b"\x01"))  # "0x1"
                str(AccountAddress(b"\x00" * 31 + b"\x10"))  # "0x00...0010"
        """
        suffix = self.address.hex()
        if self.is_special():
            suffix = suffix.lstrip("0") or "0"
        return f"0x{suffix}"

    def __repr__(self):
        return self.__str__()

    def to_long_string(self) -> str:
        """The 0x-prefixed 64 hex character form, regardless of specialness."""
        return f"0x{self.address.hex()}"

    def is_special(self):
        """True for 0x0 through 0xf: 31 zero bytes followed by a byte below 0x10.

        This corresponds to addresses that match the regex pattern
        ``^0{63}[0-9a-f]$`` in hexadecimal representation.
        """
        return all(b == 0 for b in self.address[:-1]) and self.address[-1] < 0b10000

    @staticmethod
    def from_str(address: str) -> AccountAddress:
        """Parse an address that is written in strict AIP-40 form.

        Accepted formats:
        - LONG form: "0x" + exactly 64 hex characters
        - SHORT form: "0x" + a single hex character, for special addresses only

        Args:
            address: A hex string representing the account address.

        Returns:
            A new AccountAddress instance.

        Raises:
            NonStandardAddress: If the prefix is missing, a special address is
                padded, or a non-special address is not in LONG form.
            ParseAddressError: If the string is not a valid address at all.

        Examples:
            Valid and invalid strict forms::

                AccountAddress.from_str("0xf")          # ok
                AccountAddress.from_str("0x" + "1" * 64)  # ok
                AccountAddress.from_str("0x0f")         # padded, raises
                AccountAddress.from_str("0x10")         # short non-special, raises
        """
        if not address.startswith("0x"):
            raise NonStandardAddress("Hex string must start with a leading 0x.")

        out = AccountAddress.from_str_relaxed(address)

        # Anything that is not LONG form must be a special address in SHORT form.
        if len(address) != AccountAddress.LENGTH * 2 + 2:
            if not out.is_special():
                raise NonStandardAddress(
                    "The given hex string is not a special address, it must be "
                    "represented as 0x + 64 chars."
                )
            if len(address) != 3:
                raise NonStandardAddress(
                    "The given hex string is a special address not in LONG form, "
                    "it must be 0x0 to 0xf without padding zeroes."
                )

        return out

    @staticmethod
    def from_str_relaxed(address: str) -> AccountAddress:
        """Parse an address leniently.

        The ``0x`` prefix is optional, and shorter inputs (including odd
        lengths) are left-padded with zeroes to 32 bytes.

        Args:
            address: A hex string representing the account address.

        Returns:
            A new AccountAddress instance.

        Raises:
            AddressTooShort: If no hex digits are given.
            AddressTooLong: If more than 64 hex digits are given.
            InvalidHex: If the string contains non-hexadecimal characters.

        Examples:
            Flexible format handling::

                AccountAddress.from_str_relaxed("0x1")
                AccountAddress.from_str_relaxed("1")
                AccountAddress.from_str_relaxed("0x00abc123")
        """
        addr = address

        if address[0:2] == "0x":
            addr = address[2:]

        if len(addr) < 1:
            raise AddressTooShort(
                "Hex string is too short, must be 1 to 64 chars long, excluding the "
                "leading 0x."
            )

        if len(addr) > AccountAddress.LENGTH * 2:
            raise AddressTooLong(len(addr))

        if len(addr) < AccountAddress.LENGTH * 2:
            pad = "0" * (AccountAddress.LENGTH * 2 - len(addr))
            addr = pad + addr

        try:
            return AccountAddress(bytes.fromhex(addr))
        except ValueError as e:
            raise InvalidHex(f"Invalid hex string {address!r}: {e}") from e

    @staticmethod
    def from_key(key: asymmetric_crypto.PublicKey) -> AccountAddress:
        """Derive the address of an account from its public key.

        The address equals the authentication key: the SHA3-256 hash of the
        key's bytes followed by its scheme byte.

        Args:
            key: An ed25519.PublicKey, ed25519.MultiPublicKey,
                asymmetric_crypto_wrapper.AnyPublicKey or
                asymmetric_crypto_wrapper.MultiKey.

        Raises:
            TypeError: If the key type cannot own an account.
        """
        # authentication_key imports the key modules, which depend on this one.
        from .authentication_key import AuthenticationKey

        return AuthenticationKey.from_public_key(key).account_address()

    @staticmethod
    def derive(creator: AccountAddress, seed: bytes, scheme: bytes) -> AccountAddress:
        """Hash ``creator || seed || scheme`` into an address."""
        return AccountAddress(sha3_256(creator.address + seed + scheme))

    @staticmethod
    def for_resource_account(creator: AccountAddress, seed: bytes) -> AccountAddress:
        """Address of the resource account ``creator`` creates with ``seed``.

        Resource accounts have no private key; the same creator and seed always
        produce the same address.
        """
        return AccountAddress.derive(
            creator, seed, AuthKeyScheme.DeriveResourceAccountAddress
        )

    @staticmethod
    def for_guid_object(creator: AccountAddress, creation_num: int) -> AccountAddress:
        """Address of the object created with the GUID ``(creator, creation_num)``.

        Note the order: the u64 creation number comes before the creator.
        """
        serializer = Serializer()
        serializer.u64(creation_num)
        return AccountAddress(
            sha3_256(
                serializer.output()
                + creator.address
                + AuthKeyScheme.DeriveObjectAddressFromGuid
            )
        )

    @staticmethod
    def for_named_object(creator: AccountAddress, seed: bytes) -> AccountAddress:
        """Address of the named object ``creator`` creates with ``seed``.

        Examples:
            Singleton objects with predictable addresses::

                config = AccountAddress.for_named_object(creator, b"global_config")
        """
        return AccountAddress.derive(
            creator, seed, AuthKeyScheme.DeriveObjectAddressFromSeed
        )

    @staticmethod
    def for_object_from_object(
        creator: AccountAddress, object_address: AccountAddress
    ) -> AccountAddress:
        """Address of the object ``creator`` derives from another object.

        This is how primary fungible stores are located: the owner is the
        creator and the fungible asset metadata is the source object.

        Args:
            creator: The owning account.
            object_address: The object the new address is derived from.

        Returns:
            The derived object address.
        """
        return AccountAddress.derive(
            creator,
            object_address.address,
            AuthKeyScheme.DeriveObjectAddressFromObject,
        )

    @staticmethod
    def for_named_token(
        creator: AccountAddress, collection_name: str, token_name: str
    ) -> AccountAddress:
        """Address of a named token, seeded with ``collection::token``."""
        collection_bytes = collection_name.encode()
        token_bytes = token_name.encode()
        return AccountAddress.for_named_object(
            creator, collection_bytes + b"::" + token_bytes
        )

    @staticmethod
    def for_named_collection(
        creator: AccountAddress, collection_name: str
    ) -> AccountAddress:
        return AccountAddress.for_named_object(creator, collection_name.encode())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AccountAddress:
        return AccountAddress(deserializer.fixed_bytes(AccountAddress.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


@dataclass(init=True, frozen=True)
class TestAddresses:
    shortWith0x: str
    shortWithout0x: str
    longWith0x: str
    longWithout0x: str
    bytes: bytes


ADDRESS_ZERO = TestAddresses(
    shortWith0x="0x0",
    shortWithout0x="0",
    longWith0x="0x" + "0" * 64,
    longWithout0x="0" * 64,
    bytes=bytes(32),
)

ADDRESS_F = TestAddresses(
    shortWith0x="0xf",
    shortWithout0x="f",
    longWith0x="0x" + "0" * 63 + "f",
    longWithout0x="0" * 63 + "f",
    bytes=bytes([0] * 31 + [15]),
)

ADDRESS_F_PADDED_SHORT_FORM = TestAddresses(
    shortWith0x="0x0f",
    shortWithout0x="0f",
    longWith0x="0x" + "0" * 63 + "f",
    longWithout0x="0" * 63 + "f",
    bytes=bytes([0] * 31 + [15]),
)

ADDRESS_TEN = TestAddresses(
    shortWith0x="0x10",
    shortWithout0x="10",
    longWith0x="0x" + "0" * 62 + "10",
    longWithout0x="0" * 62 + "10",
    bytes=bytes([0] * 31 + [16]),
)

ADDRESS_OTHER = TestAddresses(
    shortWith0x="0xca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0",
    shortWithout0x="ca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0",
    longWith0x="0xca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0",
    longWithout0x="ca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0",
    bytes=bytes.fromhex(
        "ca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0"
    ),
)


class Test(unittest.TestCase):
    def test_multi_ed25519(self):
        private_key_1 = ed25519.PrivateKey.from_str(
            "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        )
        private_key_2 = ed25519.PrivateKey.from_str(
            "1e70e49b78f976644e2c51754a2f049d3ff041869c669523ba95b172c7329901"
        )
        multisig_public_key = ed25519.MultiPublicKey(
            [private_key_1.public_key(), private_key_2.public_key()], 1
        )

        expected = AccountAddress.from_str_relaxed(
            "835bb8c5ee481062946b18bbb3b42a40b998d6bf5316ca63834c959dc739acf0"
        )
        actual = AccountAddress.from_key(multisig_public_key)
        self.assertEqual(actual, expected)

    def test_ed25519(self):
        private_key = ed25519.PrivateKey.from_str(
            "0xc5338cd251c22daa8c9c9cc94f498cc8a5c7e1d2e75287a5dda91096fe64efa5"
        )
        self.assertEqual(
            str(AccountAddress.from_key(private_key.public_key())),
            "0x978c213990c4833df71548df7ce49d54c759d6b6d932de22b24d56060b7af2aa",
        )

    def test_resource_account(self):
        base_address = AccountAddress.from_str_relaxed("b0b")
        expected = AccountAddress.from_str_relaxed(
            "ee89f8c763c27f9d942d496c1a0dcf32d5eacfe78416f9486b8db66155b163b0"
        )
        actual = AccountAddress.for_resource_account(base_address, b"\x0b\x00\x0b")
        self.assertEqual(actual, expected)

    def test_named_object(self):
        base_address = AccountAddress.from_str_relaxed("b0b")
        expected = AccountAddress.from_str_relaxed(
            "f417184602a828a3819edf5e36285ebef5e4db1ba36270be580d6fd2d7bcc321"
        )
        actual = AccountAddress.for_named_object(base_address, b"bob's collection")
        self.assertEqual(actual, expected)

    def test_collection(self):
        base_address = AccountAddress.from_str_relaxed("b0b")
        expected = AccountAddress.from_str_relaxed(
            "f417184602a828a3819edf5e36285ebef5e4db1ba36270be580d6fd2d7bcc321"
        )
        actual = AccountAddress.for_named_collection(base_address, "bob's collection")
        self.assertEqual(actual, expected)

    def test_token(self):
        base_address = AccountAddress.from_str_relaxed("b0b")
        expected = AccountAddress.from_str_relaxed(
            "e20d1f22a5400ba7be0f515b7cbd00edc42dbcc31acc01e31128b2b5ddb3c56e"
        )
        actual = AccountAddress.for_named_token(
            base_address, "bob's collection", "bob's token"
        )
        self.assertEqual(actual, expected)

    def test_primary_store(self):
        owner = AccountAddress.from_str(
            "0xc67545d6f3d36ed01efc9b28cbfd0c1ae326d5d262dd077a29539bcee0edce9e"
        )
        metadata = AccountAddress.from_str(
            "0x2ebb2ccac5e027a87fa0e2e5f656a3a4238d6a48d93ec9b610d570fc0aa0df12"
        )
        expected = AccountAddress.from_str_relaxed(
            "0x8a9d57692a9d4deb1680eaf107b83c152436e10f7bb521143fa403fa95ef76a"
        )
        self.assertEqual(
            AccountAddress.for_object_from_object(owner, metadata), expected
        )

    def test_guid_object_differs_by_creation_number(self):
        creator = AccountAddress.from_str_relaxed("b0b")
        first = AccountAddress.for_guid_object(creator, 0)
        self.assertEqual(first, AccountAddress.for_guid_object(creator, 0))
        self.assertNotEqual(first, AccountAddress.for_guid_object(creator, 1))

    def test_aip40_special_and_long(self):
        one = AccountAddress.from_str_relaxed("0x1")
        self.assertEqual(one.address, bytes(31) + b"\x01")
        self.assertEqual(str(one), "0x1")

        ten = AccountAddress.from_str_relaxed("0x10")
        self.assertEqual(ten.address, bytes(31) + b"\x10")
        self.assertEqual(str(ten), "0x" + "0" * 62 + "10")

        full = AccountAddress.from_str_relaxed("0x" + "ff" * 32)
        self.assertEqual(full.address, b"\xff" * 32)

        with self.assertRaises(AddressTooLong):
            AccountAddress.from_str_relaxed("0x" + "f" * 65)

    def test_odd_length_is_left_padded(self):
        self.assertEqual(
            AccountAddress.from_str_relaxed("0xabc").address, bytes(30) + b"\x0a\xbc"
        )

    def test_parse_errors(self):
        with self.assertRaises(AddressTooShort):
            AccountAddress.from_str_relaxed("0x")
        with self.assertRaises(AddressTooShort):
            AccountAddress.from_str_relaxed("")
        with self.assertRaises(InvalidHex):
            AccountAddress.from_str_relaxed("0xzz")
        with self.assertRaises(ParseAddressError):
            AccountAddress(b"\x00" * 31)

    def test_ordering_and_hashing(self):
        one = AccountAddress.from_str("0x1")
        two = AccountAddress.from_str("0x2")
        other = AccountAddress.from_str(ADDRESS_OTHER.longWith0x)
        self.assertEqual(sorted([other, two, one]), [one, two, other])
        self.assertEqual(
            {one: "a", AccountAddress.from_str_relaxed("1"): "b"}, {one: "b"}
        )

    def test_bcs(self):
        ser = Serializer()
        AccountAddress.from_str("0x1").serialize(ser)
        self.assertEqual(ser.output(), bytes(31) + b"\x01")
        self.assertEqual(
            AccountAddress.deserialize(Deserializer(ser.output())),
            AccountAddress.from_str("0x1"),
        )

    def test_round_trip_of_string_forms(self):
        for value in [ADDRESS_ZERO, ADDRESS_F, ADDRESS_TEN, ADDRESS_OTHER]:
            address = AccountAddress(value.bytes)
            self.assertEqual(AccountAddress.from_str(str(address)), address)
            self.assertEqual(
                AccountAddress.from_str(address.to_long_string()), address
            )

    def test_from_str_relaxed(self):
        for value in [ADDRESS_ZERO, ADDRESS_F]:
            for text in [
                value.longWith0x,
                value.longWithout0x,
                value.shortWith0x,
                value.shortWithout0x,
            ]:
                self.assertEqual(
                    str(AccountAddress.from_str_relaxed(text)), value.shortWith0x
                )

        # Padding zeroes are allowed for 0x0f.
        self.assertEqual(
            str(
                AccountAddress.from_str_relaxed(ADDRESS_F_PADDED_SHORT_FORM.shortWith0x)
            ),
            ADDRESS_F.shortWith0x,
        )
        self.assertEqual(
            str(
                AccountAddress.from_str_relaxed(
                    ADDRESS_F_PADDED_SHORT_FORM.shortWithout0x
                )
            ),
            ADDRESS_F.shortWith0x,
        )

        for value in [ADDRESS_TEN, ADDRESS_OTHER]:
            for text in [value.longWith0x, value.longWithout0x, value.shortWith0x]:
                self.assertEqual(
                    str(AccountAddress.from_str_relaxed(text)), value.longWith0x
                )

    def test_from_str(self):
        # Only LONG and SHORT with 0x are accepted for special addresses.
        for value in [ADDRESS_ZERO, ADDRESS_F]:
            self.assertEqual(
                str(AccountAddress.from_str(value.longWith0x)), value.shortWith0x
            )
            self.assertEqual(
                str(AccountAddress.from_str(value.shortWith0x)), value.shortWith0x
            )
            self.assertRaises(
                NonStandardAddress, AccountAddress.from_str, value.longWithout0x
            )
            self.assertRaises(
                NonStandardAddress, AccountAddress.from_str, value.shortWithout0x
            )

        # Padding zeroes are not allowed for 0x0f.
        self.assertRaises(
            NonStandardAddress,
            AccountAddress.from_str,
            ADDRESS_F_PADDED_SHORT_FORM.shortWith0x,
        )

        # Only LONG form is accepted for everything else.
        self.assertEqual(
            str(AccountAddress.from_str(ADDRESS_TEN.longWith0x)), ADDRESS_TEN.longWith0x
        )
        self.assertRaises(
            NonStandardAddress, AccountAddress.from_str, ADDRESS_TEN.shortWith0x
        )
        self.assertRaises(
            NonStandardAddress, AccountAddress.from_str, ADDRESS_TEN.shortWithout0x
        )
        self.assertEqual(
            str(AccountAddress.from_str(ADDRESS_OTHER.longWith0x)),
            ADDRESS_OTHER.longWith0x,
        )
        self.assertRaises(
            NonStandardAddress, AccountAddress.from_str, ADDRESS_OTHER.longWithout0x
        )


if __name__ == "__main__":
    unittest.main()
