# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Payment transactions and their authorization envelopes.

A :class:`RawTransaction` is the unsigned payload. Its canonical signing bytes
are a ``b"TX"`` domain tag followed by the BCS encoding of its fields, so
every co-signer signs exactly the same bytes. A :class:`SignedTransaction`
pairs the payload with either a single detached signature or a multisig
authorization.
"""

from __future__ import annotations

import unittest
from typing import Optional

from typing_extensions import Protocol

from . import ed25519, multisig
from .account_address import AccountAddress
from .bcs import Deserializable, Deserializer, Serializable, Serializer


class TransactionMismatchError(Exception):
    """Signed transactions wrap different payloads and cannot be combined."""


class TransactionSigner(Protocol):
    """A participant able to produce a detached signature over a transaction.

    ``sign_transaction`` is awaitable so the key material may live outside
    the process, behind a remote signer or a hardware device.
    """

    def public_key(self) -> ed25519.PublicKey:
        ...

    async def sign_transaction(self, transaction: RawTransaction) -> ed25519.Signature:
        ...


class RawTransaction(Deserializable, Serializable):
    """An unsigned payment from ``sender`` to ``receiver``.

    Attributes:
        sender: The paying account, required before the transaction is signed.
        receiver: The receiving account.
        amount: Amount transferred, in base units.
        fee: Fee paid by the sender, in base units.
        first_valid: First round in which the transaction may be confirmed.
        last_valid: Last round in which the transaction may be confirmed.
        genesis_id: Identifier of the network the transaction is bound to.
        note: Arbitrary bytes carried with the transaction.
    """

    SIGNING_PREFIX: bytes = b"TX"

    sender: Optional[AccountAddress]
    receiver: AccountAddress
    amount: int
    fee: int
    first_valid: int
    last_valid: int
    genesis_id: str
    note: bytes

    def __init__(
        self,
        sender: Optional[AccountAddress],
        receiver: AccountAddress,
        amount: int,
        fee: int,
        first_valid: int,
        last_valid: int,
        genesis_id: str = "",
        note: bytes = b"",
    ):
        if last_valid < first_valid:
            raise ValueError(
                f"last_valid {last_valid} precedes first_valid {first_valid}"
            )
        self.sender = sender
        self.receiver = receiver
        self.amount = amount
        self.fee = fee
        self.first_valid = first_valid
        self.last_valid = last_valid
        self.genesis_id = genesis_id
        self.note = note

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RawTransaction):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.receiver == other.receiver
            and self.amount == other.amount
            and self.fee == other.fee
            and self.first_valid == other.first_valid
            and self.last_valid == other.last_valid
            and self.genesis_id == other.genesis_id
            and self.note == other.note
        )

    def __str__(self):
        return f"""RawTransaction:
    sender: {self.sender}
    receiver: {self.receiver}
    amount: {self.amount}
    fee: {self.fee}
    valid rounds: {self.first_valid}..{self.last_valid}
    genesis_id: {self.genesis_id}
    note: {self.note!r}
"""

    def signing_bytes(self) -> bytes:
        """The canonical bytes every signer signs."""
        ser = Serializer()
        self.serialize(ser)
        return self.SIGNING_PREFIX + ser.output()

    def sign(self, private_key: ed25519.PrivateKey) -> SignedTransaction:
        """Authorize a transaction from a single-key account."""
        signature = private_key.sign(self.signing_bytes())
        return SignedTransaction(self, signature=signature)

    def attach_multisig(
        self, authorization: multisig.MultiSignature
    ) -> SignedTransaction:
        return SignedTransaction(self, multisig=authorization)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> RawTransaction:
        return RawTransaction(
            sender=deserializer.option(AccountAddress.deserialize),
            receiver=AccountAddress.deserialize(deserializer),
            amount=deserializer.u64(),
            fee=deserializer.u64(),
            first_valid=deserializer.u64(),
            last_valid=deserializer.u64(),
            genesis_id=deserializer.str(),
            note=deserializer.to_bytes(),
        )

    def serialize(self, serializer: Serializer):
        serializer.option(self.sender, Serializer.struct)
        serializer.struct(self.receiver)
        serializer.u64(self.amount)
        serializer.u64(self.fee)
        serializer.u64(self.first_valid)
        serializer.u64(self.last_valid)
        serializer.str(self.genesis_id)
        serializer.to_bytes(self.note)


class SignedTransaction(Deserializable, Serializable):
    """A transaction together with its authorization.

    A single-key account attaches ``signature``. A multisig account attaches
    ``multisig``, which may still be partial. An instance with neither is a
    transaction nobody has signed yet.
    """

    transaction: RawTransaction
    signature: Optional[ed25519.Signature]
    multisig: Optional[multisig.MultiSignature]

    def __init__(
        self,
        transaction: RawTransaction,
        signature: Optional[ed25519.Signature] = None,
        multisig: Optional[multisig.MultiSignature] = None,
    ):
        if signature is not None and multisig is not None:
            raise ValueError("A transaction carries either a signature or a multisig")
        self.transaction = transaction
        self.signature = signature
        self.multisig = multisig

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignedTransaction):
            return NotImplemented
        return (
            self.transaction == other.transaction
            and self.signature == other.signature
            and self.multisig == other.multisig
        )

    def __str__(self) -> str:
        if self.multisig is not None:
            return f"Transaction: {self.transaction}Authorization: {self.multisig}"
        return f"Transaction: {self.transaction}Signature: {self.signature}"

    def is_complete(self) -> bool:
        """Whether the transaction carries enough signatures to be submitted."""
        if self.multisig is not None:
            return self.multisig.is_complete()
        return self.signature is not None

    @staticmethod
    def merge(*signed_transactions: SignedTransaction) -> SignedTransaction:
        """Combine partially signed copies of the same multisig transaction.

        :raises ValueError: If no transactions are given
        :raises TransactionMismatchError: If the payloads differ or one carries
            no multisig authorization
        :raises ConflictingSignatureError: If two copies sign one slot differently
        :raises MissingSenderError: If the transaction has no sender
        :raises SenderMismatchError: If the authorization belongs to a different
            multisig account than the sender
        """
        if len(signed_transactions) == 0:
            raise ValueError("At least one signed transaction is required to merge")

        transaction = signed_transactions[0].transaction
        partials = []
        for signed in signed_transactions:
            if signed.transaction != transaction:
                raise TransactionMismatchError(
                    "Cannot merge signatures for different transactions"
                )
            if signed.multisig is None:
                raise TransactionMismatchError(
                    "Cannot merge a transaction without a multisig authorization"
                )
            partials.append(signed.multisig)

        merged = multisig.MultiSignature.merge(*partials)

        sender = transaction.sender
        if sender is None:
            raise multisig.MissingSenderError()
        group = merged.multisig_address()
        if group.address() != sender:
            raise multisig.SenderMismatchError(str(group), sender.encoded_address())

        return SignedTransaction(transaction, multisig=merged)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SignedTransaction:
        transaction = RawTransaction.deserialize(deserializer)
        signature = deserializer.option(ed25519.Signature.deserialize)
        authorization = deserializer.option(multisig.MultiSignature.deserialize)
        return SignedTransaction(transaction, signature, authorization)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.transaction)
        serializer.option(self.signature, Serializer.struct)
        serializer.option(self.multisig, Serializer.struct)


class Test(unittest.TestCase):
    def setUp(self):
        self.sender = AccountAddress(b"\x01" * 32)
        self.receiver = AccountAddress(b"\x02" * 32)
        self.transaction = RawTransaction(
            sender=self.sender,
            receiver=self.receiver,
            amount=5,
            fee=1,
            first_valid=10,
            last_valid=20,
            genesis_id="net",
            note=b"hi",
        )

    def test_signing_bytes(self):
        expected = (
            b"TX"
            + b"\x01"
            + b"\x01" * 32
            + b"\x02" * 32
            + (5).to_bytes(8, "little")
            + (1).to_bytes(8, "little")
            + (10).to_bytes(8, "little")
            + (20).to_bytes(8, "little")
            + b"\x03net"
            + b"\x02hi"
        )
        self.assertEqual(self.transaction.signing_bytes(), expected)

    def test_missing_sender_encoding(self):
        self.transaction.sender = None
        self.assertEqual(self.transaction.signing_bytes()[:3], b"TX\x00")

    def test_invalid_rounds(self):
        with self.assertRaises(ValueError):
            RawTransaction(self.sender, self.receiver, 1, 1, 20, 10)

    def test_single_signature(self):
        private_key = ed25519.PrivateKey.random()
        signed = self.transaction.sign(private_key)
        self.assertTrue(signed.is_complete())
        self.assertTrue(
            private_key.public_key().verify(
                self.transaction.signing_bytes(), signed.signature
            )
        )

    def test_serialization(self):
        signed = self.transaction.sign(ed25519.PrivateKey.random())
        ser = Serializer()
        signed.serialize(ser)
        self.assertEqual(SignedTransaction.deserialize(Deserializer(ser.output())), signed)

    def test_merge(self):
        keys = [ed25519.PrivateKey.random() for _ in range(3)]
        msig = multisig.MultisigAddress(1, 2, [key.public_key() for key in keys])
        self.transaction.sender = msig.address()
        template = multisig.MultiSignature.for_address(msig)
        data = self.transaction.signing_bytes()

        first = self.transaction.attach_multisig(
            template.with_signature(0, keys[0].sign(data))
        )
        second = self.transaction.attach_multisig(
            template.with_signature(1, keys[1].sign(data))
        )
        self.assertFalse(first.is_complete())

        merged = SignedTransaction.merge(first, second)
        self.assertTrue(merged.is_complete())
        self.assertEqual(merged.multisig.signature_count(), 2)

        ser = Serializer()
        merged.serialize(ser)
        self.assertEqual(SignedTransaction.deserialize(Deserializer(ser.output())), merged)

    def test_merge_mismatch(self):
        keys = [ed25519.PrivateKey.random().public_key() for _ in range(2)]
        template = multisig.MultiSignature.for_address(
            multisig.MultisigAddress(1, 1, keys)
        )
        other = RawTransaction(self.sender, self.receiver, 6, 1, 10, 20)
        with self.assertRaises(TransactionMismatchError):
            SignedTransaction.merge(
                self.transaction.attach_multisig(template),
                other.attach_multisig(template),
            )
        with self.assertRaises(TransactionMismatchError):
            SignedTransaction.merge(
                self.transaction.attach_multisig(template),
                SignedTransaction(self.transaction),
            )

    def test_merge_other_group(self):
        keys = [ed25519.PrivateKey.random() for _ in range(2)]
        pair = multisig.MultisigAddress(1, 1, [key.public_key() for key in keys])
        single = multisig.MultisigAddress(1, 1, [keys[0].public_key()])
        self.transaction.sender = pair.address()
        data = self.transaction.signing_bytes()

        foreign = self.transaction.attach_multisig(
            multisig.MultiSignature.for_address(single).with_signature(
                0, keys[0].sign(data)
            )
        )
        with self.assertRaises(multisig.SenderMismatchError) as cm:
            SignedTransaction.merge(foreign)
        self.assertEqual(cm.exception.expected, str(single))
        self.assertEqual(cm.exception.actual, str(pair))

        self.transaction.sender = None
        with self.assertRaises(multisig.MissingSenderError):
            SignedTransaction.merge(self.transaction.attach_multisig(foreign.multisig))

    def test_merge_rejects_decoded_invalid_group(self):
        keys = [ed25519.PrivateKey.random().public_key() for _ in range(2)]
        template = multisig.MultiSignature.for_address(
            multisig.MultisigAddress(1, 1, keys)
        )
        ser = Serializer()
        self.transaction.serialize(ser)
        ser.option(None, Serializer.struct)
        ser.bool(True)
        ser.u8(1)
        ser.u8(0)
        ser.sequence(template.subsigs, Serializer.struct)
        with self.assertRaises(multisig.InvalidThresholdError):
            SignedTransaction.from_bytes(ser.output())


if __name__ == "__main__":
    unittest.main()
