# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Transaction and account authenticators.

Authenticators pair public keys with signatures over a signing message. They
exist at two levels, both encoded as a ULEB128 variant tag followed by the
variant's fields:

Authentication Hierarchy::

    Authenticator (transaction level)
    ├── 0 Ed25519Authenticator
    ├── 1 MultiEd25519Authenticator
    ├── 2 MultiAgentAuthenticator    sender + secondary signers
    ├── 3 FeePayerAuthenticator      sender + secondary signers + fee payer
    └── 4 SingleSenderAuthenticator  sender as an AccountAuthenticator

    AccountAuthenticator (signer level)
    ├── 0 Ed25519Authenticator
    ├── 1 MultiEd25519Authenticator
    ├── 2 SingleKeyAuthenticator     AnyPublicKey + AnySignature
    ├── 3 MultiKeyAuthenticator      MultiKey + MultiKeySignature
    └── 4 NoAccountAuthenticator     placeholder for simulation, never valid

Secondary signers are ``(address, AccountAuthenticator)`` pairs; on the wire
the addresses come first as one sequence, then the authenticators. Unknown
variant tags fail decoding with :class:`~aptos_core.bcs.InvalidVariant`.

``verify(data)`` never raises. For compound authenticators it is the
conjunction of every inner verification.
"""

from __future__ import annotations

import typing
import unittest
from typing import List

from . import asymmetric_crypto, ed25519, keyless, secp256k1_ecdsa, secp256r1_ecdsa
from .account_address import AccountAddress
from .asymmetric_crypto import (  # noqa: F401
    AuthenticatorError,
    BitmapSizeMismatch,
    SignatureCountMismatch,
    ThresholdNotMet,
)
from .asymmetric_crypto_wrapper import (
    AnyPublicKey,
    AnySignature,
    MultiKey,
    MultiKeySignature,
)
from .bcs import Deserializer, InvalidVariant, LengthOutOfBounds, Serializer

SecondarySigner = typing.Tuple[AccountAddress, "AccountAuthenticator"]


class Authenticator:
    """The authenticator attached to a signed transaction.

    Attributes:
        variant: The transaction authenticator tag
        authenticator: The wrapped authenticator
    """

    ED25519: int = 0
    MULTI_ED25519: int = 1
    MULTI_AGENT: int = 2
    FEE_PAYER: int = 3
    SINGLE_SENDER: int = 4

    variant: int
    authenticator: typing.Any

    def __init__(self, authenticator: typing.Any):
        if isinstance(authenticator, Ed25519Authenticator):
            self.variant = Authenticator.ED25519
        elif isinstance(authenticator, MultiEd25519Authenticator):
            self.variant = Authenticator.MULTI_ED25519
        elif isinstance(authenticator, MultiAgentAuthenticator):
            self.variant = Authenticator.MULTI_AGENT
        elif isinstance(authenticator, FeePayerAuthenticator):
            self.variant = Authenticator.FEE_PAYER
        elif isinstance(authenticator, SingleSenderAuthenticator):
            self.variant = Authenticator.SINGLE_SENDER
        else:
            raise TypeError(f"Invalid authenticator: {type(authenticator).__name__}")
        self.authenticator = authenticator

    @staticmethod
    def for_sender(sender: AccountAuthenticator) -> Authenticator:
        """Wrap a sole sender's authenticator in the matching transaction form.

        Ed25519 and MultiEd25519 senders use their dedicated transaction
        variants; every other scheme goes through SingleSender.
        """
        if sender.variant in (
            AccountAuthenticator.ED25519,
            AccountAuthenticator.MULTI_ED25519,
        ):
            return Authenticator(sender.authenticator)
        return Authenticator(SingleSenderAuthenticator(sender))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Authenticator):
            return NotImplemented
        return (
            self.variant == other.variant and self.authenticator == other.authenticator
        )

    def __str__(self) -> str:
        return self.authenticator.__str__()

    def verify(self, data: bytes) -> bool:
        return self.authenticator.verify(data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Authenticator:
        variant = deserializer.uleb128()

        if variant == Authenticator.ED25519:
            authenticator: typing.Any = Ed25519Authenticator.deserialize(deserializer)
        elif variant == Authenticator.MULTI_ED25519:
            authenticator = MultiEd25519Authenticator.deserialize(deserializer)
        elif variant == Authenticator.MULTI_AGENT:
            authenticator = MultiAgentAuthenticator.deserialize(deserializer)
        elif variant == Authenticator.FEE_PAYER:
            authenticator = FeePayerAuthenticator.deserialize(deserializer)
        elif variant == Authenticator.SINGLE_SENDER:
            authenticator = SingleSenderAuthenticator.deserialize(deserializer)
        else:
            raise deserializer.fail(InvalidVariant("Authenticator", variant))

        return Authenticator(authenticator)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.authenticator)


class AccountAuthenticator:
    """One signer's proof: a public key and a signature, tagged by scheme."""

    ED25519: int = 0
    MULTI_ED25519: int = 1
    SINGLE_KEY: int = 2
    MULTI_KEY: int = 3
    NO_ACCOUNT_AUTHENTICATOR: int = 4

    variant: int
    authenticator: typing.Any

    def __init__(self, authenticator: typing.Any):
        if isinstance(authenticator, Ed25519Authenticator):
            self.variant = AccountAuthenticator.ED25519
        elif isinstance(authenticator, MultiEd25519Authenticator):
            self.variant = AccountAuthenticator.MULTI_ED25519
        elif isinstance(authenticator, SingleKeyAuthenticator):
            self.variant = AccountAuthenticator.SINGLE_KEY
        elif isinstance(authenticator, MultiKeyAuthenticator):
            self.variant = AccountAuthenticator.MULTI_KEY
        elif isinstance(authenticator, NoAccountAuthenticator):
            self.variant = AccountAuthenticator.NO_ACCOUNT_AUTHENTICATOR
        else:
            raise TypeError(f"Invalid authenticator: {type(authenticator).__name__}")
        self.authenticator = authenticator

    @staticmethod
    def from_key_and_signature(
        public_key: asymmetric_crypto.PublicKey,
        signature: asymmetric_crypto.Signature,
    ) -> AccountAuthenticator:
        """Build the account authenticator for a key and its signature.

        Bare secp256k1, secp256r1 and keyless keys are promoted to SingleKey.

        Raises:
            TypeError: If the key and signature do not form a known pair.
        """
        if isinstance(public_key, ed25519.PublicKey) and isinstance(
            signature, ed25519.Signature
        ):
            return AccountAuthenticator(Ed25519Authenticator(public_key, signature))
        if isinstance(public_key, ed25519.MultiPublicKey) and isinstance(
            signature, ed25519.MultiSignature
        ):
            return AccountAuthenticator(
                MultiEd25519Authenticator(public_key, signature)
            )
        if isinstance(public_key, MultiKey) and isinstance(
            signature, MultiKeySignature
        ):
            return AccountAuthenticator(MultiKeyAuthenticator(public_key, signature))
        if isinstance(
            public_key,
            (
                secp256k1_ecdsa.PublicKey,
                secp256r1_ecdsa.PublicKey,
                keyless.KeylessPublicKey,
                keyless.FederatedKeylessPublicKey,
            ),
        ):
            public_key = AnyPublicKey(public_key)
        if isinstance(public_key, AnyPublicKey):
            if not isinstance(signature, AnySignature):
                signature = AnySignature(signature)
            return AccountAuthenticator(SingleKeyAuthenticator(public_key, signature))
        raise TypeError(
            f"No authenticator for {type(public_key).__name__} "
            f"and {type(signature).__name__}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAuthenticator):
            return NotImplemented
        return (
            self.variant == other.variant and self.authenticator == other.authenticator
        )

    def __repr__(self) -> str:
        return self.__str__()

    def __str__(self) -> str:
        return self.authenticator.__str__()

    def verify(self, data: bytes) -> bool:
        return self.authenticator.verify(data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AccountAuthenticator:
        variant = deserializer.uleb128()

        if variant == AccountAuthenticator.ED25519:
            authenticator: typing.Any = Ed25519Authenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.MULTI_ED25519:
            authenticator = MultiEd25519Authenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.SINGLE_KEY:
            authenticator = SingleKeyAuthenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.MULTI_KEY:
            authenticator = MultiKeyAuthenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.NO_ACCOUNT_AUTHENTICATOR:
            authenticator = NoAccountAuthenticator.deserialize(deserializer)
        else:
            raise deserializer.fail(InvalidVariant("AccountAuthenticator", variant))

        return AccountAuthenticator(authenticator)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.authenticator)


class Ed25519Authenticator:
    public_key: ed25519.PublicKey
    signature: ed25519.Signature

    def __init__(self, public_key: ed25519.PublicKey, signature: ed25519.Signature):
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ed25519Authenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"PublicKey: {self.public_key}, Signature: {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Ed25519Authenticator:
        key = deserializer.struct(ed25519.PublicKey)
        signature = deserializer.struct(ed25519.Signature)
        return Ed25519Authenticator(key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class MultiEd25519Authenticator:
    public_key: ed25519.MultiPublicKey
    signature: ed25519.MultiSignature

    def __init__(
        self, public_key: ed25519.MultiPublicKey, signature: ed25519.MultiSignature
    ):
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiEd25519Authenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"MultiPublicKey: {self.public_key}, MultiSignature: {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiEd25519Authenticator:
        public_key = deserializer.struct(ed25519.MultiPublicKey)
        signature = deserializer.struct(ed25519.MultiSignature)
        return MultiEd25519Authenticator(public_key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class SingleKeyAuthenticator:
    public_key: AnyPublicKey
    signature: AnySignature

    def __init__(
        self,
        public_key: asymmetric_crypto.PublicKey,
        signature: asymmetric_crypto.Signature,
    ):
        if not isinstance(public_key, AnyPublicKey):
            public_key = AnyPublicKey(public_key)
        if not isinstance(signature, AnySignature):
            signature = AnySignature(signature)
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleKeyAuthenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"SingleKey: {self.public_key}, {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SingleKeyAuthenticator:
        public_key = deserializer.struct(AnyPublicKey)
        signature = deserializer.struct(AnySignature)
        return SingleKeyAuthenticator(public_key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class MultiKeyAuthenticator:
    public_key: MultiKey
    signature: MultiKeySignature

    def __init__(self, public_key: MultiKey, signature: MultiKeySignature):
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiKeyAuthenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"MultiKey: {self.public_key}, {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiKeyAuthenticator:
        public_key = deserializer.struct(MultiKey)
        signature = deserializer.struct(MultiKeySignature)
        return MultiKeyAuthenticator(public_key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class NoAccountAuthenticator:
    """Stands in for a signer that has not signed, for example in simulation.

    It carries no data and never verifies.
    """

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NoAccountAuthenticator):
            return NotImplemented
        return True

    def __str__(self) -> str:
        return "NoAccountAuthenticator"

    def verify(self, data: bytes) -> bool:
        return False

    @staticmethod
    def deserialize(deserializer: Deserializer) -> NoAccountAuthenticator:
        return NoAccountAuthenticator()

    def serialize(self, serializer: Serializer):
        pass


class SingleSenderAuthenticator:
    sender: AccountAuthenticator

    def __init__(self, sender: AccountAuthenticator):
        self.sender = sender

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleSenderAuthenticator):
            return NotImplemented
        return self.sender == other.sender

    def __str__(self) -> str:
        return f"SingleSender: {self.sender}"

    def verify(self, data: bytes) -> bool:
        return self.sender.verify(data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SingleSenderAuthenticator:
        return SingleSenderAuthenticator(deserializer.struct(AccountAuthenticator))

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)


class MultiAgentAuthenticator:
    """Authenticates a transaction signed by a sender and secondary signers."""

    sender: AccountAuthenticator
    secondary_signers: List[SecondarySigner]

    def __init__(
        self,
        sender: AccountAuthenticator,
        secondary_signers: List[SecondarySigner],
    ):
        self.sender = sender
        self.secondary_signers = secondary_signers

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiAgentAuthenticator):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.secondary_signers == other.secondary_signers
        )

    def __str__(self) -> str:
        return (
            f"MultiAgent: \n\tSender: {self.sender}"
            f"\n\tSecondary Signers: {self.secondary_signers}"
        )

    def secondary_addresses(self) -> List[AccountAddress]:
        return [x[0] for x in self.secondary_signers]

    def verify(self, data: bytes) -> bool:
        if not self.sender.verify(data):
            return False
        return all([x[1].verify(data) for x in self.secondary_signers])

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiAgentAuthenticator:
        sender = deserializer.struct(AccountAuthenticator)
        secondary_addresses = deserializer.sequence(AccountAddress.deserialize)
        secondary_authenticators = deserializer.sequence(
            AccountAuthenticator.deserialize
        )
        secondary_signers = _pair_secondary(
            deserializer, secondary_addresses, secondary_authenticators
        )
        return MultiAgentAuthenticator(sender, secondary_signers)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)
        serializer.sequence([x[0] for x in self.secondary_signers], Serializer.struct)
        serializer.sequence([x[1] for x in self.secondary_signers], Serializer.struct)


class FeePayerAuthenticator:
    """Authenticates a sponsored transaction.

    The fee payer signs the same message as the sender and the secondary
    signers, and its address is bound into that message.
    """

    sender: AccountAuthenticator
    secondary_signers: List[SecondarySigner]
    fee_payer: SecondarySigner

    def __init__(
        self,
        sender: AccountAuthenticator,
        secondary_signers: List[SecondarySigner],
        fee_payer: SecondarySigner,
    ):
        self.sender = sender
        self.secondary_signers = secondary_signers
        self.fee_payer = fee_payer

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeePayerAuthenticator):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.secondary_signers == other.secondary_signers
            and self.fee_payer == other.fee_payer
        )

    def __str__(self) -> str:
        return (
            f"FeePayer: \n\tSender: {self.sender}"
            f"\n\tSecondary Signers: {self.secondary_signers}\n\t{self.fee_payer}"
        )

    def fee_payer_address(self) -> AccountAddress:
        return self.fee_payer[0]

    def secondary_addresses(self) -> List[AccountAddress]:
        return [x[0] for x in self.secondary_signers]

    def verify(self, data: bytes) -> bool:
        if not self.sender.verify(data):
            return False
        if not self.fee_payer[1].verify(data):
            return False
        return all([x[1].verify(data) for x in self.secondary_signers])

    @staticmethod
    def deserialize(deserializer: Deserializer) -> FeePayerAuthenticator:
        sender = deserializer.struct(AccountAuthenticator)
        secondary_addresses = deserializer.sequence(AccountAddress.deserialize)
        secondary_authenticators = deserializer.sequence(
            AccountAuthenticator.deserialize
        )
        fee_payer_address = deserializer.struct(AccountAddress)
        fee_payer_authenticator = deserializer.struct(AccountAuthenticator)
        secondary_signers = _pair_secondary(
            deserializer, secondary_addresses, secondary_authenticators
        )
        return FeePayerAuthenticator(
            sender, secondary_signers, (fee_payer_address, fee_payer_authenticator)
        )

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)
        serializer.sequence([x[0] for x in self.secondary_signers], Serializer.struct)
        serializer.sequence([x[1] for x in self.secondary_signers], Serializer.struct)
        serializer.struct(self.fee_payer[0])
        serializer.struct(self.fee_payer[1])


def _pair_secondary(
    deserializer: Deserializer,
    addresses: List[AccountAddress],
    authenticators: List[AccountAuthenticator],
) -> List[SecondarySigner]:
    if len(addresses) != len(authenticators):
        raise deserializer.fail(
            LengthOutOfBounds(
                "secondary signers",
                len(authenticators),
                len(addresses),
                len(addresses),
            )
        )
    return list(zip(addresses, authenticators))


class Test(unittest.TestCase):
    def setUp(self):
        self.message = b"authenticated message"
        self.ed25519_key = ed25519.PrivateKey.random()
        self.secp256k1_key = secp256k1_ecdsa.PrivateKey.random()

    def ed25519_authenticator(self) -> AccountAuthenticator:
        return AccountAuthenticator.from_key_and_signature(
            self.ed25519_key.public_key(), self.ed25519_key.sign(self.message)
        )

    def test_multi_key_round_trip(self):
        expected_output = bytes.fromhex(
            "040303002020fdbac9b10b7587bba7b5bc163bce69e796d71e4ed44c10fcb448"
            "8689f7a1440141049b8327d929a0e45285c04d19c9fffbee065c266b70197292"
            "2d807228120e43f34ad68ac77f6ec0205fe39f7c5b6055dad973a03464a3a743"
            "302de0feaf6ec6d90141049b8327d929a0e45285c04d19c9fffbee065c266b70"
            "1972922d807228120e43f34ad68ac77f6ec0205fe39f7c5b6055dad973a03464"
            "a3a743302de0feaf6ec6d902020040a9839b56be99b48c285ec252cf9bf779e4"
            "2d3b62eb8664c31b18c1fdb29b574b1bfde0b89aedddb9fb8304ca5913c9feef"
            "ea75d332d8f72ac3ab4598a884ea0801402bd50683abe6332a496121f8ec7db7"
            "be351f49b0087fa0dfb258c469822bd52e59fc9344944a1f338b0f0a61c71734"
            "53e0cd09cf961e45cb9396808fa67eeef304c0000000"
        )
        decoded = Deserializer(expected_output).struct(Authenticator)
        self.assertEqual(decoded.variant, Authenticator.SINGLE_SENDER)

        pk0 = ed25519.PublicKey.from_str(
            "20FDBAC9B10B7587BBA7B5BC163BCE69E796D71E4ED44C10FCB4488689F7A144"
        )
        pk1 = secp256k1_ecdsa.PublicKey.from_str(
            "049B8327D929A0E45285C04D19C9FFFBEE065C266B701972922D807228120E43F3"
            "4AD68AC77F6EC0205FE39F7C5B6055DAD973A03464A3A743302DE0FEAF6EC6D9"
        )
        sig0 = ed25519.Signature.from_str(
            "a9839b56be99b48c285ec252cf9bf779e42d3b62eb8664c31b18c1fdb29b574b"
            "1bfde0b89aedddb9fb8304ca5913c9feefea75d332d8f72ac3ab4598a884ea08"
        )
        sig1 = secp256k1_ecdsa.Signature.from_str(
            "2bd50683abe6332a496121f8ec7db7be351f49b0087fa0dfb258c469822bd52e"
            "59fc9344944a1f338b0f0a61c7173453e0cd09cf961e45cb9396808fa67eeef3"
        )
        multi_key = MultiKey([pk0, pk1, pk1], 2)
        multi_sig = MultiKeySignature([sig0, sig1], b"\xc0\x00\x00\x00")
        txn_auth = Authenticator(
            SingleSenderAuthenticator(
                AccountAuthenticator(MultiKeyAuthenticator(multi_key, multi_sig))
            )
        )
        self.assertEqual(decoded, txn_auth)

        ser = Serializer()
        decoded.serialize(ser)
        self.assertEqual(ser.output(), expected_output)

        short_bitmap = expected_output[:-5] + b"\x01\xc0"
        with self.assertRaises(LengthOutOfBounds):
            Deserializer(short_bitmap).struct(Authenticator)

    def test_for_sender(self):
        ed25519_auth = self.ed25519_authenticator()
        txn_auth = Authenticator.for_sender(ed25519_auth)
        self.assertEqual(txn_auth.variant, Authenticator.ED25519)
        self.assertTrue(txn_auth.verify(self.message))

        single_key_auth = AccountAuthenticator.from_key_and_signature(
            self.secp256k1_key.public_key(), self.secp256k1_key.sign(self.message)
        )
        self.assertEqual(single_key_auth.variant, AccountAuthenticator.SINGLE_KEY)
        txn_auth = Authenticator.for_sender(single_key_auth)
        self.assertEqual(txn_auth.variant, Authenticator.SINGLE_SENDER)
        self.assertTrue(txn_auth.verify(self.message))
        self.assertFalse(txn_auth.verify(b"another message"))

    def test_from_key_and_signature_mismatch(self):
        with self.assertRaises(TypeError):
            AccountAuthenticator.from_key_and_signature(
                self.ed25519_key.public_key(), self.secp256k1_key.sign(self.message)
            )

    def test_ed25519_encoding(self):
        auth = self.ed25519_authenticator()
        ser = Serializer()
        auth.serialize(ser)
        output = ser.output()
        self.assertEqual(output[0], AccountAuthenticator.ED25519)
        self.assertEqual(len(output), 1 + 33 + 65)
        self.assertEqual(Deserializer(output).struct(AccountAuthenticator), auth)

    def test_multi_agent(self):
        secondary_address = AccountAddress.from_str_relaxed("0xb0b")
        secondary_key = secp256k1_ecdsa.PrivateKey.random()
        secondary_auth = AccountAuthenticator.from_key_and_signature(
            secondary_key.public_key(), secondary_key.sign(self.message)
        )
        multi_agent = MultiAgentAuthenticator(
            self.ed25519_authenticator(), [(secondary_address, secondary_auth)]
        )
        self.assertEqual(multi_agent.secondary_addresses(), [secondary_address])
        self.assertTrue(Authenticator(multi_agent).verify(self.message))

        ser = Serializer()
        Authenticator(multi_agent).serialize(ser)
        decoded = Deserializer(ser.output()).struct(Authenticator)
        self.assertEqual(decoded.variant, Authenticator.MULTI_AGENT)
        self.assertEqual(decoded.authenticator, multi_agent)

        bad_auth = AccountAuthenticator.from_key_and_signature(
            secondary_key.public_key(), secondary_key.sign(b"something else")
        )
        multi_agent = MultiAgentAuthenticator(
            self.ed25519_authenticator(), [(secondary_address, bad_auth)]
        )
        self.assertFalse(multi_agent.verify(self.message))

    def test_fee_payer(self):
        fee_payer_address = AccountAddress.from_str_relaxed("0xfee")
        fee_payer_key = ed25519.PrivateKey.random()
        fee_payer_auth = AccountAuthenticator.from_key_and_signature(
            fee_payer_key.public_key(), fee_payer_key.sign(self.message)
        )
        fee_payer = FeePayerAuthenticator(
            self.ed25519_authenticator(), [], (fee_payer_address, fee_payer_auth)
        )
        self.assertEqual(fee_payer.fee_payer_address(), fee_payer_address)
        self.assertEqual(fee_payer.secondary_addresses(), [])
        self.assertTrue(fee_payer.verify(self.message))

        ser = Serializer()
        Authenticator(fee_payer).serialize(ser)
        output = ser.output()
        self.assertEqual(output[0], Authenticator.FEE_PAYER)
        decoded = Deserializer(output).struct(Authenticator)
        self.assertEqual(decoded.authenticator, fee_payer)

        unsigned = FeePayerAuthenticator(
            self.ed25519_authenticator(),
            [],
            (fee_payer_address, AccountAuthenticator(NoAccountAuthenticator())),
        )
        self.assertFalse(unsigned.verify(self.message))

    def test_no_account_authenticator(self):
        auth = AccountAuthenticator(NoAccountAuthenticator())
        ser = Serializer()
        auth.serialize(ser)
        self.assertEqual(ser.output(), b"\x04")
        self.assertFalse(auth.verify(self.message))
        self.assertEqual(Deserializer(b"\x04").struct(AccountAuthenticator), auth)

    def test_unknown_variants(self):
        with self.assertRaises(InvalidVariant):
            Deserializer(b"\x05").struct(AccountAuthenticator)
        with self.assertRaises(InvalidVariant):
            Deserializer(b"\x05").struct(Authenticator)

    def test_secondary_signer_count_mismatch(self):
        ser = Serializer()
        self.ed25519_authenticator().serialize(ser)
        ser.sequence([AccountAddress.from_str_relaxed("0xb0b")], Serializer.struct)
        ser.sequence([], Serializer.struct)
        with self.assertRaises(LengthOutOfBounds):
            Deserializer(ser.output()).struct(MultiAgentAuthenticator)


if __name__ == "__main__":
    unittest.main()
