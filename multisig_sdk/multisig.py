# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Threshold multisig accounts and their partial authorizations.

A multisig account is a logical account backed by an ordered set of Ed25519
public keys, a threshold and a version. Any ``threshold`` of the members can
jointly authorize a transaction sent from the account.

The account address is the SHA-512/256 digest of a fixed preimage::

    b"MultisigAddr" || u8(version) || u8(threshold) || key_0 || ... || key_n-1

Key order is part of the identity: the same keys in a different order give a
different, incompatible account.

Co-signing happens independently. Each member signs the transaction on its
own and produces a :class:`MultiSignature` in which only its own slot carries
a signature. The partial authorizations are later combined with
:meth:`MultiSignature.merge`, and the transaction is ready for submission once
the number of signed slots reaches the threshold.

Examples:
    Deriving a 2-of-3 account::

        msig = MultisigAddress(1, 2, [alice.public_key(), bob.public_key(), chad.public_key()])
        print(msig)  # checksummed address text

    Collecting signatures::

        alice_part = await msig.sign(alice, transaction)
        bob_part = await msig.sign(bob, transaction)
        signed = transactions.SignedTransaction.merge(alice_part, bob_part)
        assert signed.is_complete()
"""

from __future__ import annotations

import logging
import unittest
from typing import List, Optional, Sequence, Tuple

from . import ed25519, transactions
from .account_address import AccountAddress, sha512_256
from .bcs import Deserializable, Deserializer, Serializable, Serializer


class MultisigError(Exception):
    """Base class for every multisig validation or protocol failure."""


class UnsupportedVersionError(MultisigError):
    def __init__(self, version: int):
        super().__init__(
            f"Unknown multisig version {version}, "
            f"only version {MultisigAddress.SUPPORTED_VERSION} is supported"
        )
        self.version = version


class InvalidThresholdError(MultisigError):
    def __init__(self, threshold: int, key_count: int):
        super().__init__(
            f"Invalid threshold {threshold} for {key_count} public keys, "
            f"must be between 1 and the number of keys"
        )
        self.threshold = threshold
        self.key_count = key_count


class MissingSenderError(MultisigError):
    def __init__(self):
        super().__init__("Transaction has no sender")


class SenderMismatchError(MultisigError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Transaction sender {actual} does not match multisig account {expected}"
        )
        self.expected = expected
        self.actual = actual


class KeyNotInGroupError(MultisigError):
    def __init__(self, public_key: ed25519.PublicKey):
        super().__init__(f"Multisig account does not contain public key {public_key}")
        self.public_key = public_key


class ConflictingSignatureError(MultisigError):
    """Two partial authorizations carry different signatures for one slot."""

    def __init__(self, index: int, public_key: ed25519.PublicKey):
        super().__init__(
            f"Conflicting signatures at index {index} for public key {public_key}"
        )
        self.index = index
        self.public_key = public_key


class MultisigMismatchError(MultisigError):
    """Partial authorizations describe different multisig accounts."""


class MultisigAddress(Deserializable, Serializable):
    """An ordered group of public keys with a version and a threshold.

    Instances are validated on construction and immutable afterwards. The key
    list is copied into a tuple, so mutating the list passed in cannot change
    an already derived address.

    Attributes:
        MULTISIG_PREFIX: Domain separator hashed in front of the preimage.
        SUPPORTED_VERSION: The only accepted version value (1).
        MAX_THRESHOLD: Largest threshold that fits the one byte field.
    """

    MULTISIG_PREFIX: bytes = b"MultisigAddr"
    SUPPORTED_VERSION: int = 1
    MAX_THRESHOLD: int = 255

    _version: int
    _threshold: int
    _public_keys: Tuple[ed25519.PublicKey, ...]
    _address: AccountAddress

    def __init__(
        self, version: int, threshold: int, public_keys: Sequence[ed25519.PublicKey]
    ):
        """
        :param version: Multisig version, must be 1
        :param threshold: Number of signatures required, 1 to len(public_keys)
        :param public_keys: The ordered member keys
        :raises UnsupportedVersionError: If the version is not supported
        :raises InvalidThresholdError: If the threshold or key count is invalid
        """
        keys = tuple(public_keys)
        error = MultisigAddress.check(version, threshold, keys)
        if error is not None:
            raise error

        self._version = version
        self._threshold = threshold
        self._public_keys = keys
        self._address = AccountAddress(sha512_256(self.preimage()))

    @staticmethod
    def check(
        version: int, threshold: int, public_keys: Sequence[ed25519.PublicKey]
    ) -> Optional[MultisigError]:
        """Validate construction arguments without raising.

        Returns:
            The error the constructor would raise, or None if the arguments
            describe a valid multisig account.
        """
        if version != MultisigAddress.SUPPORTED_VERSION:
            return UnsupportedVersionError(version)
        if (
            threshold < 1
            or len(public_keys) == 0
            or threshold > len(public_keys)
            or threshold > MultisigAddress.MAX_THRESHOLD
        ):
            return InvalidThresholdError(threshold, len(public_keys))
        return None

    @staticmethod
    def from_bytes_keys(
        version: int, threshold: int, public_keys: Sequence[bytes]
    ) -> MultisigAddress:
        """Build a multisig account from raw 32-byte public keys."""
        keys = [ed25519.PublicKey.from_crypto_bytes(key) for key in public_keys]
        return MultisigAddress(version, threshold, keys)

    @property
    def version(self) -> int:
        return self._version

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def public_keys(self) -> Tuple[ed25519.PublicKey, ...]:
        return self._public_keys

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultisigAddress):
            return NotImplemented
        return (
            self._version == other._version
            and self._threshold == other._threshold
            and self._public_keys == other._public_keys
        )

    def __hash__(self) -> int:
        return hash((self._version, self._threshold, self._public_keys))

    def __str__(self) -> str:
        return self._address.encoded_address()

    def __repr__(self) -> str:
        return (
            f"MultisigAddress(version={self._version}, threshold={self._threshold}, "
            f"keys={len(self._public_keys)}, address={self})"
        )

    def preimage(self) -> bytes:
        """The exact byte string hashed into the account identifier."""
        data = bytearray(self.MULTISIG_PREFIX)
        data.append(self._version)
        data.append(self._threshold)
        for key in self._public_keys:
            data.extend(key.to_crypto_bytes())
        return bytes(data)

    def address(self) -> AccountAddress:
        return self._address

    def index_of(self, public_key: ed25519.PublicKey) -> int:
        """Position of ``public_key`` in the group.

        :raises KeyNotInGroupError: If the key is not a member
        """
        for index, key in enumerate(self._public_keys):
            if key == public_key:
                return index
        raise KeyNotInGroupError(public_key)

    async def sign(
        self,
        participant: transactions.TransactionSigner,
        transaction: transactions.RawTransaction,
    ) -> transactions.SignedTransaction:
        """Produce this participant's partial authorization for ``transaction``.

        The transaction must be sent from this multisig account and the
        participant's public key must belong to the group. The returned
        transaction carries a :class:`MultiSignature` whose only signed slot
        is the participant's own.

        :raises MissingSenderError: If the transaction has no sender
        :raises SenderMismatchError: If the sender is a different account
        :raises KeyNotInGroupError: If the participant is not a member
        """
        sender = transaction.sender
        if sender is None:
            raise MissingSenderError()

        expected = str(self)
        if sender.encoded_address() != expected:
            raise SenderMismatchError(expected, sender.encoded_address())

        public_key = participant.public_key()
        index = self.index_of(public_key)

        signature = await participant.sign_transaction(transaction)

        multisig = MultiSignature.for_address(self).with_signature(index, signature)
        logging.debug(
            f"Signed slot {index} of {len(self._public_keys)} for multisig {expected}"
        )
        return transaction.attach_multisig(multisig)

    async def append(
        self,
        participant: transactions.TransactionSigner,
        signed_transaction: transactions.SignedTransaction,
    ) -> transactions.SignedTransaction:
        """Co-sign a partially signed transaction and merge in the new signature."""
        partial = await self.sign(participant, signed_transaction.transaction)
        return transactions.SignedTransaction.merge(signed_transaction, partial)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultisigAddress:
        version = deserializer.u8()
        threshold = deserializer.u8()
        keys = deserializer.sequence(ed25519.PublicKey.deserialize)
        return MultisigAddress(version, threshold, keys)

    def serialize(self, serializer: Serializer):
        serializer.u8(self._version)
        serializer.u8(self._threshold)
        serializer.sequence(self._public_keys, Serializer.struct)


class MultisigSubsig(Deserializable, Serializable):
    """One member's slot: its public key and, once signed, its signature."""

    _key: ed25519.PublicKey
    _signature: Optional[ed25519.Signature]

    def __init__(
        self, key: ed25519.PublicKey, signature: Optional[ed25519.Signature] = None
    ):
        self._key = key
        self._signature = signature

    @property
    def key(self) -> ed25519.PublicKey:
        return self._key

    @property
    def signature(self) -> Optional[ed25519.Signature]:
        return self._signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultisigSubsig):
            return NotImplemented
        return self.key == other.key and self.signature == other.signature

    def __hash__(self) -> int:
        return hash((self.key, self.signature))

    def __repr__(self) -> str:
        return f"MultisigSubsig(key={self.key}, signature={self.signature})"

    def is_signed(self) -> bool:
        return self.signature is not None

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultisigSubsig:
        key = deserializer.struct(ed25519.PublicKey)
        signature = deserializer.option(ed25519.Signature.deserialize)
        return MultisigSubsig(key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.key)
        serializer.option(self.signature, Serializer.struct)


class MultiSignature(Deserializable, Serializable):
    """The group authorization attached to a multisig transaction.

    It holds one :class:`MultisigSubsig` per member, in member order. Slots
    of members that have not signed yet keep their key with no signature.
    Instances are immutable: :meth:`with_signature` and :meth:`merge` return
    new objects.

    The version, threshold and slot count are validated as for
    :class:`MultisigAddress`, so an authorization decoded from the wire
    cannot claim an unknown version or a zero threshold.
    """

    _version: int
    _threshold: int
    _subsigs: Tuple[MultisigSubsig, ...]

    def __init__(self, version: int, threshold: int, subsigs: Sequence[MultisigSubsig]):
        """
        :raises UnsupportedVersionError: If the version is not supported
        :raises InvalidThresholdError: If the threshold or slot count is invalid
        """
        slots = tuple(subsigs)
        error = MultisigAddress.check(
            version, threshold, [subsig.key for subsig in slots]
        )
        if error is not None:
            raise error

        self._version = version
        self._threshold = threshold
        self._subsigs = slots

    @property
    def version(self) -> int:
        return self._version

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def subsigs(self) -> Tuple[MultisigSubsig, ...]:
        return self._subsigs

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiSignature):
            return NotImplemented
        return (
            self.version == other.version
            and self.threshold == other.threshold
            and self.subsigs == other.subsigs
        )

    def __hash__(self) -> int:
        return hash((self.version, self.threshold, self.subsigs))

    def __str__(self) -> str:
        return (
            f"{self.signature_count()}-of-{self.threshold} signed "
            f"({len(self.subsigs)} keys) multisig"
        )

    def __repr__(self) -> str:
        return f"MultiSignature({self.version}, {self.threshold}, {list(self.subsigs)})"

    @staticmethod
    def for_address(multisig_address: MultisigAddress) -> MultiSignature:
        """An authorization for ``multisig_address`` with every slot unsigned."""
        return MultiSignature(
            multisig_address.version,
            multisig_address.threshold,
            [MultisigSubsig(key) for key in multisig_address.public_keys],
        )

    def with_signature(self, index: int, signature: ed25519.Signature) -> MultiSignature:
        subsigs = list(self.subsigs)
        subsigs[index] = MultisigSubsig(subsigs[index].key, signature)
        return MultiSignature(self.version, self.threshold, subsigs)

    def public_keys(self) -> Tuple[ed25519.PublicKey, ...]:
        return tuple(subsig.key for subsig in self.subsigs)

    def multisig_address(self) -> MultisigAddress:
        """Rebuild, and re-validate, the account this authorization belongs to."""
        return MultisigAddress(self.version, self.threshold, self.public_keys())

    def signature_count(self) -> int:
        return sum(1 for subsig in self.subsigs if subsig.is_signed())

    def is_complete(self) -> bool:
        return self.signature_count() >= self.threshold

    @staticmethod
    def merge(*multisigs: MultiSignature) -> MultiSignature:
        """Combine independently collected partial authorizations.

        Every input must describe the same account (version, threshold and
        ordered keys). For each slot the signature supplied by any input is
        kept. The same signature supplied twice is accepted.

        :raises ValueError: If no authorizations are given
        :raises MultisigMismatchError: If the inputs describe different accounts
        :raises ConflictingSignatureError: If two inputs sign one slot differently
        """
        if len(multisigs) == 0:
            raise ValueError("At least one multisig is required to merge")

        first = multisigs[0]
        keys = first.public_keys()
        for other in multisigs[1:]:
            if (
                other.version != first.version
                or other.threshold != first.threshold
                or other.public_keys() != keys
            ):
                raise MultisigMismatchError(
                    "Cannot merge signatures for different multisig accounts"
                )

        signatures: List[Optional[ed25519.Signature]] = [None] * len(keys)
        for multisig in multisigs:
            for index, subsig in enumerate(multisig.subsigs):
                if subsig.signature is None:
                    continue
                current = signatures[index]
                if current is None:
                    signatures[index] = subsig.signature
                elif current != subsig.signature:
                    raise ConflictingSignatureError(index, subsig.key)

        merged = MultiSignature(
            first.version,
            first.threshold,
            [MultisigSubsig(key, sig) for key, sig in zip(keys, signatures)],
        )
        logging.debug(
            f"Merged {len(multisigs)} multisigs, "
            f"{merged.signature_count()} of {merged.threshold} signatures collected"
        )
        return merged

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiSignature:
        version = deserializer.u8()
        threshold = deserializer.u8()
        subsigs = deserializer.sequence(MultisigSubsig.deserialize)
        return MultiSignature(version, threshold, subsigs)

    def serialize(self, serializer: Serializer):
        serializer.u8(self.version)
        serializer.u8(self.threshold)
        serializer.sequence(self.subsigs, Serializer.struct)


"""
Tests
"""


def keys_from_addresses(addresses: List[str]) -> List[ed25519.PublicKey]:
    return [
        ed25519.PublicKey.from_crypto_bytes(AccountAddress.from_str(addr).address)
        for addr in addresses
    ]


REFERENCE_KEYS = [
    "DN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA",
    "BFRTECKTOOE7A5LHCF3TTEOH2A7BW46IYT2SX5VP6ANKEXHZYJY77SJTVM",
    "47YPQTIGQEO7T4Y4RWDYWEKV6RTR2UNBQXBABEEGM72ESWDQNCQ52OPASU",
]


class Test(unittest.TestCase):
    def setUp(self):
        self.keys = keys_from_addresses(REFERENCE_KEYS)

    def test_reference_address(self):
        msig = MultisigAddress(1, 2, self.keys)
        self.assertEqual(
            msig.address().address.hex(),
            "8d92b489900173a04dfa4359a3666a6afcea2c42a05dd9c1f73eeba5478037e9",
        )
        self.assertEqual(
            str(msig), "RWJLJCMQAFZ2ATP2INM2GZTKNL6OULCCUBO5TQPXH3V2KR4AG7U5UA5JNM"
        )

    def test_two_key_address(self):
        keys = [
            ed25519.PublicKey.from_str(
                "754bb6a4720a658bdd5f532995955db0971ad3519acbde2f1149c3857348006c"
            ),
            ed25519.PublicKey.from_str(
                "1634cd4607073f2be4a6f2aadc2b866ddb117398a675f2096ed906b20e0bf2c9"
            ),
        ]
        msig = MultisigAddress(1, 1, keys)
        self.assertEqual(
            str(msig), "KZYBBFADDS76OM66WQCMJKGK2XADTNDFRQF4NCT6QNDNLVTQQHUVXJXZUY"
        )

    def test_preimage_layout(self):
        msig = MultisigAddress(1, 2, self.keys)
        preimage = msig.preimage()
        self.assertEqual(preimage[:12], b"MultisigAddr")
        self.assertEqual(preimage[12], 1)
        self.assertEqual(preimage[13], 2)
        self.assertEqual(len(preimage), 14 + 32 * 3)
        self.assertEqual(preimage[14:46], self.keys[0].to_crypto_bytes())

    def test_determinism(self):
        first = MultisigAddress(1, 2, self.keys)
        second = MultisigAddress(1, 2, list(self.keys))
        self.assertEqual(first.address(), second.address())
        self.assertEqual(first, second)
        self.assertEqual(hash(first), hash(second))

    def test_order_sensitivity(self):
        reference = MultisigAddress(1, 2, self.keys)
        permutations = [
            [self.keys[1], self.keys[0], self.keys[2]],
            [self.keys[2], self.keys[1], self.keys[0]],
            [self.keys[0], self.keys[2], self.keys[1]],
        ]
        for permutation in permutations:
            permuted = MultisigAddress(1, 2, permutation)
            self.assertNotEqual(permuted.address(), reference.address())
            self.assertNotEqual(permuted, reference)

    def test_threshold_boundary(self):
        with self.assertRaises(InvalidThresholdError):
            MultisigAddress(1, 0, self.keys)
        self.assertEqual(MultisigAddress(1, 1, self.keys).threshold, 1)
        self.assertEqual(MultisigAddress(1, 3, self.keys).threshold, 3)
        with self.assertRaises(InvalidThresholdError) as cm:
            MultisigAddress(1, 4, self.keys)
        self.assertEqual(cm.exception.threshold, 4)
        self.assertEqual(cm.exception.key_count, 3)

    def test_empty_keys(self):
        with self.assertRaises(InvalidThresholdError):
            MultisigAddress(1, 1, [])

    def test_version_gate(self):
        for threshold in range(1, 4):
            MultisigAddress(1, threshold, self.keys)
        for version in [0, 2, 255]:
            with self.assertRaises(UnsupportedVersionError) as cm:
                MultisigAddress(version, 2, self.keys)
            self.assertEqual(cm.exception.version, version)

    def test_check_does_not_raise(self):
        self.assertIsNone(MultisigAddress.check(1, 2, self.keys))
        self.assertIsInstance(
            MultisigAddress.check(2, 2, self.keys), UnsupportedVersionError
        )
        self.assertIsInstance(
            MultisigAddress.check(1, 5, self.keys), InvalidThresholdError
        )

    def test_keys_copied(self):
        keys = list(self.keys)
        msig = MultisigAddress(1, 2, keys)
        address = msig.address()
        keys.reverse()
        self.assertEqual(msig.public_keys, tuple(self.keys))
        self.assertEqual(msig.address(), address)

    def test_from_bytes_keys(self):
        raw = [key.to_crypto_bytes() for key in self.keys]
        self.assertEqual(
            MultisigAddress.from_bytes_keys(1, 2, raw), MultisigAddress(1, 2, self.keys)
        )

    def test_index_of(self):
        msig = MultisigAddress(1, 2, self.keys)
        self.assertEqual(msig.index_of(self.keys[2]), 2)
        outsider = ed25519.PrivateKey.random().public_key()
        with self.assertRaises(KeyNotInGroupError):
            msig.index_of(outsider)

    def test_address_serialization(self):
        msig = MultisigAddress(1, 2, self.keys)
        ser = Serializer()
        msig.serialize(ser)
        self.assertEqual(MultisigAddress.deserialize(Deserializer(ser.output())), msig)

    def test_merge(self):
        msig = MultisigAddress(1, 2, self.keys)
        signature_0 = ed25519.Signature(b"\x01" * 64)
        signature_2 = ed25519.Signature(b"\x02" * 64)
        empty = MultiSignature.for_address(msig)
        first = empty.with_signature(0, signature_0)
        second = empty.with_signature(2, signature_2)

        self.assertEqual(first.signature_count(), 1)
        self.assertFalse(first.is_complete())

        merged = MultiSignature.merge(first, second, first)
        self.assertEqual(merged.signature_count(), 2)
        self.assertTrue(merged.is_complete())
        self.assertEqual(merged.subsigs[0], MultisigSubsig(self.keys[0], signature_0))
        self.assertEqual(merged.subsigs[1], MultisigSubsig(self.keys[1]))
        self.assertEqual(merged.subsigs[2], MultisigSubsig(self.keys[2], signature_2))
        self.assertEqual(merged.multisig_address(), msig)

    def test_merge_conflict(self):
        msig = MultisigAddress(1, 2, self.keys)
        empty = MultiSignature.for_address(msig)
        first = empty.with_signature(1, ed25519.Signature(b"\x01" * 64))
        second = empty.with_signature(1, ed25519.Signature(b"\x02" * 64))
        with self.assertRaises(ConflictingSignatureError) as cm:
            MultiSignature.merge(first, second)
        self.assertEqual(cm.exception.index, 1)

    def test_merge_mismatch(self):
        first = MultiSignature.for_address(MultisigAddress(1, 2, self.keys))
        second = MultiSignature.for_address(MultisigAddress(1, 3, self.keys))
        reordered = MultiSignature.for_address(
            MultisigAddress(1, 2, list(reversed(self.keys)))
        )
        with self.assertRaises(MultisigMismatchError):
            MultiSignature.merge(first, second)
        with self.assertRaises(MultisigMismatchError):
            MultiSignature.merge(first, reordered)
        with self.assertRaises(ValueError):
            MultiSignature.merge()

    def test_multisignature_serialization(self):
        msig = MultisigAddress(1, 2, self.keys)
        multisig = MultiSignature.for_address(msig).with_signature(
            1, ed25519.Signature(b"\x03" * 64)
        )
        ser = Serializer()
        multisig.serialize(ser)
        der = Deserializer(ser.output())
        self.assertEqual(MultiSignature.deserialize(der), multisig)
        self.assertEqual(der.remaining(), 0)

    def test_multisignature_validation(self):
        subsigs = [MultisigSubsig(key) for key in self.keys]
        with self.assertRaises(UnsupportedVersionError):
            MultiSignature(7, 2, subsigs)
        with self.assertRaises(InvalidThresholdError):
            MultiSignature(1, 0, subsigs)
        with self.assertRaises(InvalidThresholdError):
            MultiSignature(1, 4, subsigs)
        with self.assertRaises(InvalidThresholdError):
            MultiSignature(1, 1, [])

    def test_decode_invalid_multisignature(self):
        for version, threshold, error in [
            (7, 2, UnsupportedVersionError),
            (1, 0, InvalidThresholdError),
        ]:
            ser = Serializer()
            ser.u8(version)
            ser.u8(threshold)
            ser.sequence([MultisigSubsig(key) for key in self.keys], Serializer.struct)
            with self.assertRaises(error):
                MultiSignature.from_bytes(ser.output())

    def test_read_only(self):
        multisig = MultiSignature.for_address(MultisigAddress(1, 2, self.keys))
        with self.assertRaises(AttributeError):
            multisig.threshold = 0
        with self.assertRaises(AttributeError):
            multisig.subsigs = ()
        with self.assertRaises(AttributeError):
            multisig.subsigs[0].signature = ed25519.Signature(b"\x01" * 64)


class CoSignTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        from .account import Account

        self.members = [Account.generate() for _ in range(3)]
        self.msig = MultisigAddress(
            1, 2, [member.public_key() for member in self.members]
        )
        self.transaction = transactions.RawTransaction(
            sender=self.msig.address(),
            receiver=self.members[0].address(),
            amount=1_000,
            fee=1_000,
            first_valid=100,
            last_valid=1_100,
            genesis_id="testnet-v1.0",
            note=b"co-sign",
        )

    async def test_slot_correctness(self):
        for index, member in enumerate(self.members):
            signed = await self.msig.sign(member, self.transaction)
            multisig = signed.multisig
            self.assertIsNotNone(multisig)
            self.assertEqual(multisig.version, 1)
            self.assertEqual(multisig.threshold, 2)
            self.assertEqual(len(multisig.subsigs), 3)
            self.assertEqual(multisig.signature_count(), 1)
            for slot, subsig in enumerate(multisig.subsigs):
                self.assertEqual(subsig.key, self.msig.public_keys[slot])
                self.assertEqual(subsig.is_signed(), slot == index)
            self.assertTrue(
                member.public_key().verify(
                    self.transaction.signing_bytes(), multisig.subsigs[index].signature
                )
            )
            self.assertEqual(signed.transaction, self.transaction)

    async def test_missing_sender(self):
        self.transaction.sender = None
        with self.assertRaises(MissingSenderError):
            await self.msig.sign(self.members[0], self.transaction)

    async def test_sender_mismatch(self):
        self.transaction.sender = self.members[1].address()
        with self.assertRaises(SenderMismatchError) as cm:
            await self.msig.sign(self.members[0], self.transaction)
        self.assertEqual(cm.exception.expected, str(self.msig))
        self.assertEqual(cm.exception.actual, str(self.members[1].address()))

    async def test_key_not_in_group(self):
        from .account import Account

        with self.assertRaises(KeyNotInGroupError):
            await self.msig.sign(Account.generate(), self.transaction)

    async def test_collect_threshold(self):
        first = await self.msig.sign(self.members[0], self.transaction)
        self.assertFalse(first.is_complete())
        combined = await self.msig.append(self.members[2], first)
        self.assertTrue(combined.is_complete())
        self.assertEqual(combined.multisig.signature_count(), 2)
        self.assertFalse(combined.multisig.subsigs[1].is_signed())

    async def test_signer_failure_propagates(self):
        failure = RuntimeError("signing device unavailable")

        class FailingSigner:
            def __init__(self, public_key: ed25519.PublicKey):
                self._public_key = public_key

            def public_key(self) -> ed25519.PublicKey:
                return self._public_key

            async def sign_transaction(self, transaction):
                raise failure

        signer = FailingSigner(self.members[1].public_key())
        with self.assertRaises(RuntimeError) as cm:
            await self.msig.sign(signer, self.transaction)
        self.assertIs(cm.exception, failure)


if __name__ == "__main__":
    unittest.main()
