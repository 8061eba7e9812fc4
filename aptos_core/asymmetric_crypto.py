# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Asymmetric cryptography interfaces shared by every key scheme.

This module defines the structural protocols that concrete key types follow,
the AIP-80 private key string format and the key error hierarchy.

Key Components:
- **Protocol Definitions**: ``PrivateKey``, ``PublicKey`` and ``Signature``
- **AIP-80 Compliance**: ``{scheme}-priv-0x{hex}`` private key strings
- **Errors**: :class:`CryptoError` and its subclasses, carrying the scheme and
  the offending sizes

Supported Key Types:
- Ed25519: the default Aptos signature scheme
- secp256k1: ECDSA over the Bitcoin/Ethereum curve
- secp256r1: ECDSA over NIST P-256, used by passkeys (WebAuthn)

Private keys never print their material: ``str()`` and ``repr()`` of every
private key return :data:`REDACTED`. Use ``aip80()`` to export a key on
purpose.

Examples:
    Formatting and parsing private keys::

        formatted = PrivateKey.format_private_key(raw_key, PrivateKeyVariant.Ed25519)
        # "ed25519-priv-0x..."

        key_bytes = PrivateKey.parse_hex_input(formatted, PrivateKeyVariant.Ed25519)

    Using protocol interfaces::

        def sign_data(private_key: PrivateKey, message: bytes) -> Signature:
            return private_key.sign(message)

        def verify_signature(public_key: PublicKey, message: bytes, sig: Signature) -> bool:
            return public_key.verify(message, sig)
"""

from __future__ import annotations

import logging
import unittest
from enum import Enum
from typing import List, Sequence

from typing_extensions import Protocol

from .bcs import Deserializable, Serializable

REDACTED = "<PrivateKey:REDACTED>"


class CryptoError(Exception):
    """Base class for malformed keys and signatures."""


class InvalidKeyLength(CryptoError):
    """Key or signature material has the wrong number of bytes for its scheme."""

    scheme: str
    actual: int
    expected: int

    def __init__(self, scheme: str, actual: int, expected: int):
        super().__init__(
            f"Invalid {scheme} length: expected {expected} bytes, found {actual}"
        )
        self.scheme = scheme
        self.actual = actual
        self.expected = expected


class KeyOutOfRange(CryptoError):
    """A scalar is zero or not below the curve order."""

    scheme: str

    def __init__(self, scheme: str, message: str = "value out of range"):
        super().__init__(f"Invalid {scheme} key: {message}")
        self.scheme = scheme


class InvalidCurvePoint(CryptoError):
    """Public key bytes do not decode to a point on the curve."""

    scheme: str

    def __init__(self, scheme: str):
        super().__init__(f"Invalid {scheme} public key: not a point on the curve")
        self.scheme = scheme


class SignatureNotLowS(CryptoError):
    """An ECDSA signature uses the malleable high-s form."""

    scheme: str

    def __init__(self, scheme: str):
        super().__init__(f"Invalid {scheme} signature: s is not canonical (low-s)")
        self.scheme = scheme


class InvalidThreshold(CryptoError):
    """A multi-key threshold is zero or exceeds the number of keys."""

    threshold: int
    keys: int

    def __init__(self, threshold: int, keys: int):
        super().__init__(f"Invalid threshold {threshold} for {keys} keys")
        self.threshold = threshold
        self.keys = keys


class AuthenticatorError(CryptoError):
    """Base class for multi-signature shape and threshold failures.

    Verification methods catch these and return False; they are raised by
    :func:`check_threshold_signature` so callers that want the reason can ask
    for it.
    """


class BitmapSizeMismatch(AuthenticatorError):
    """The bitmap marks a signer index the public key does not have."""

    index: int
    keys: int

    def __init__(self, index: int, keys: int):
        super().__init__(f"Bitmap marks signer {index} but there are {keys} keys")
        self.index = index
        self.keys = keys


class SignatureCountMismatch(AuthenticatorError):
    """The number of set bitmap bits differs from the number of signatures."""

    bits: int
    signatures: int

    def __init__(self, bits: int, signatures: int):
        super().__init__(
            f"Bitmap marks {bits} signers but {signatures} signatures are present"
        )
        self.bits = bits
        self.signatures = signatures


class ThresholdNotMet(AuthenticatorError):
    """Fewer valid signatures than the threshold requires."""

    valid: int
    threshold: int

    def __init__(self, valid: int, threshold: int):
        super().__init__(f"{valid} valid signatures, threshold is {threshold}")
        self.valid = valid
        self.threshold = threshold


MULTI_SIGNATURE_BITMAP_BYTES = 4
MAX_MULTI_SIGNATURE_KEYS = MULTI_SIGNATURE_BITMAP_BYTES * 8


def bitmap_from_indices(
    indices: List[int], num_bytes: int = MULTI_SIGNATURE_BITMAP_BYTES
) -> bytes:
    """Build a signer bitmap; index i sets mask ``0x80 >> (i % 8)`` of byte ``i // 8``."""
    bitmap = bytearray(num_bytes)
    for index in indices:
        if index < 0 or index >= num_bytes * 8:
            raise BitmapSizeMismatch(index, num_bytes * 8)
        bitmap[index // 8] |= 0x80 >> (index % 8)
    return bytes(bitmap)


def bitmap_contains(bitmap: bytes, index: int) -> bool:
    byte = index // 8
    if byte >= len(bitmap):
        return False
    return bitmap[byte] & (0x80 >> (index % 8)) != 0


def bitmap_indices(bitmap: bytes) -> List[int]:
    """Signer indices marked in ``bitmap``, in ascending order."""
    return [index for index in range(len(bitmap) * 8) if bitmap_contains(bitmap, index)]


def check_threshold_signature(
    keys: Sequence[PublicKey],
    threshold: int,
    bitmap: bytes,
    signatures: Sequence[Signature],
    data: bytes,
):
    """Check a k-of-n signature, raising the reason it is invalid.

    The i-th signature is paired with the key at the i-th set bit of the
    bitmap. Every pair is verified and the number of valid pairs must reach
    ``threshold``.

    Raises:
        SignatureCountMismatch: If set bits and signatures differ in number.
        BitmapSizeMismatch: If a set bit is beyond the last key.
        ThresholdNotMet: If too few pairs verify.
    """
    indices = bitmap_indices(bitmap)
    if len(indices) != len(signatures):
        raise SignatureCountMismatch(len(indices), len(signatures))
    if indices and indices[-1] >= len(keys):
        raise BitmapSizeMismatch(indices[-1], len(keys))

    valid = 0
    for index, signature in zip(indices, signatures):
        if keys[index].verify(data, signature):
            valid += 1
    if valid < threshold:
        raise ThresholdNotMet(valid, threshold)


class PrivateKeyVariant(Enum):
    """Private key schemes and their AIP-80 scheme names.

    Examples:
        Iterating over supported schemes::

            for scheme in PrivateKeyVariant:
                print(f"Supported: {scheme.value}")
    """

    Ed25519 = "ed25519"
    Secp256k1 = "secp256k1"
    Secp256r1 = "secp256r1"


class PrivateKey(Deserializable, Serializable, Protocol):
    """Protocol for private keys.

    A private key can derive its public key, sign bytes, serialize itself with
    BCS and render itself as an AIP-80 string. Its string representations are
    redacted.

    Methods:
        hex() -> str: Hexadecimal representation of the private key
        public_key() -> PublicKey: Derive the corresponding public key
        sign(data: bytes) -> Signature: Sign data and return signature

    Static Methods:
        format_private_key(): Format keys as AIP-80 compliant strings
        parse_hex_input(): Parse various input formats to bytes
    """

    def hex(self) -> str:
        """Return the 0x-prefixed hexadecimal form of the private key."""
        ...

    def public_key(self) -> PublicKey:
        ...

    def sign(self, data: bytes) -> Signature:
        """Sign the given data using this private key.

        Args:
            data: The raw bytes to be signed. Schemes that hash before signing
                (the ECDSA schemes use SHA3-256) do so internally.

        Returns:
            A signature object for ``data``.
        """
        ...

    AIP80_PREFIXES: dict[PrivateKeyVariant, str] = {
        PrivateKeyVariant.Ed25519: "ed25519-priv-",
        PrivateKeyVariant.Secp256k1: "secp256k1-priv-",
        PrivateKeyVariant.Secp256r1: "secp256r1-priv-",
    }

    @staticmethod
    def format_private_key(
        private_key: bytes | str, key_type: PrivateKeyVariant
    ) -> str:
        """Format a private key as an AIP-80 compliant string.

        Args:
            private_key: The private key as hex (with or without '0x'), raw
                bytes, or an already AIP-80 formatted string.
            key_type: The scheme of the key.

        Returns:
            ``"{scheme}-priv-0x{hex}"``.

        Raises:
            ValueError: If the key_type is not supported.
            TypeError: If the private_key is not string or bytes.

        Examples:
            Formatting bytes::

                PrivateKey.format_private_key(
                    bytes.fromhex("1234abcd"), PrivateKeyVariant.Secp256k1
                )
                # "secp256k1-priv-0x1234abcd"
        """
        if key_type not in PrivateKey.AIP80_PREFIXES:
            raise ValueError(f"Unknown private key type: {key_type}")
        aip80_prefix = PrivateKey.AIP80_PREFIXES[key_type]

        key_value: str | None = None
        if isinstance(private_key, str):
            if private_key.startswith(aip80_prefix):
                key_value = private_key.split("-")[2]
            else:
                key_value = private_key
        elif isinstance(private_key, bytes):
            key_value = f"0x{private_key.hex()}"
        else:
            raise TypeError("Input value must be a string or bytes.")

        return f"{aip80_prefix}{key_value}"

    @staticmethod
    def parse_hex_input(
        value: str | bytes, key_type: PrivateKeyVariant, strict: bool | None = None
    ) -> bytes:
        """Parse a private key given as hex, AIP-80 string or raw bytes.

        Args:
            value: The private key in one of the accepted formats.
            key_type: The expected scheme.
            strict: AIP-80 compliance mode:
                - True: Only accept AIP-80 compliant strings
                - False: Accept legacy hex formats silently
                - None (default): Accept legacy hex formats and log a warning

        Returns:
            The private key bytes.

        Raises:
            ValueError: If key_type is unsupported, if strict is True and the
                input is not AIP-80 compliant, or if the hex is invalid.
            TypeError: If value is not string or bytes.
        """
        if key_type not in PrivateKey.AIP80_PREFIXES:
            raise ValueError(f"Unknown private key type: {key_type}")
        aip80_prefix = PrivateKey.AIP80_PREFIXES[key_type]

        if isinstance(value, str):
            if not strict and not value.startswith(aip80_prefix):
                # Non-AIP-80 compliant hex string
                if strict is None:
                    logging.warning(
                        "It is recommended that private keys are AIP-80 compliant "
                        "(https://github.com/aptos-foundation/AIPs/blob/main/aips/aip-80.md)."
                    )
                if value[0:2] == "0x":
                    value = value[2:]
                return bytes.fromhex(value)
            elif value.startswith(aip80_prefix):
                value = value.split("-")[2]
                if value[0:2] == "0x":
                    value = value[2:]
                return bytes.fromhex(value)
            else:
                raise ValueError(
                    "Invalid HexString input. Must be AIP-80 compliant string."
                )
        elif isinstance(value, bytes):
            return value
        else:
            raise TypeError("Input value must be a string or bytes.")


class PublicKey(Deserializable, Serializable, Protocol):
    """Protocol for public keys.

    Methods:
        to_crypto_bytes() -> bytes: The bytes hashed into an authentication key
        verify(data: bytes, signature: Signature) -> bool: Verify a signature
    """

    def to_crypto_bytes(self) -> bytes:
        """The key bytes committed to by authentication keys.

        For single-scheme keys this is the raw key. MultiEd25519 uses the
        concatenated keys followed by the threshold byte, while AnyPublicKey
        and MultiKey use their full BCS encoding including the variant tag.
        """
        ...

    def verify(self, data: bytes, signature: Signature) -> bool:
        """Verify ``signature`` over ``data``.

        Returns:
            True if the signature is valid. Malformed signatures, signatures
            of another scheme and any internal failure yield False; this
            method never raises.
        """
        ...


class Signature(Deserializable, Serializable, Protocol):
    """Protocol for signatures: opaque values serialized with BCS."""

    ...


class Test(unittest.TestCase):
    def test_format_private_key(self):
        self.assertEqual(
            PrivateKey.format_private_key(b"\x12\x34", PrivateKeyVariant.Secp256r1),
            "secp256r1-priv-0x1234",
        )
        self.assertEqual(
            PrivateKey.format_private_key(
                "ed25519-priv-0x1234", PrivateKeyVariant.Ed25519
            ),
            "ed25519-priv-0x1234",
        )
        with self.assertRaises(TypeError):
            PrivateKey.format_private_key(1234, PrivateKeyVariant.Ed25519)  # type: ignore

    def test_parse_hex_input(self):
        expected = b"\x12\x34"
        self.assertEqual(
            PrivateKey.parse_hex_input(
                "secp256k1-priv-0x1234", PrivateKeyVariant.Secp256k1
            ),
            expected,
        )
        self.assertEqual(
            PrivateKey.parse_hex_input(expected, PrivateKeyVariant.Ed25519), expected
        )
        self.assertEqual(
            PrivateKey.parse_hex_input("1234", PrivateKeyVariant.Ed25519, False),
            expected,
        )
        with self.assertRaises(ValueError):
            PrivateKey.parse_hex_input("0x1234", PrivateKeyVariant.Ed25519, True)

    def test_legacy_input_logs_warning(self):
        with self.assertLogs(level="WARNING") as cm:
            PrivateKey.parse_hex_input("0x1234", PrivateKeyVariant.Ed25519)
        self.assertIn("AIP-80", cm.output[0])

    def test_bitmap_bit_order(self):
        bitmap = bitmap_from_indices([0, 2])
        self.assertEqual(bitmap, bytes([0xA0, 0x00, 0x00, 0x00]))
        self.assertEqual(bitmap_indices(bitmap), [0, 2])

        bitmap = bitmap_from_indices([9, 31])
        self.assertEqual(bitmap, bytes([0x00, 0x40, 0x00, 0x01]))
        self.assertTrue(bitmap_contains(bitmap, 31))
        self.assertFalse(bitmap_contains(bitmap, 30))
        self.assertFalse(bitmap_contains(bitmap, 40))

        with self.assertRaises(BitmapSizeMismatch):
            bitmap_from_indices([32])

    def test_error_context(self):
        error = InvalidKeyLength("ed25519", 31, 32)
        self.assertEqual((error.actual, error.expected), (31, 32))
        self.assertIsInstance(error, CryptoError)


if __name__ == "__main__":
    unittest.main()
