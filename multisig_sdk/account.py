# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Local single-key accounts that take part in multisig groups.

An :class:`Account` holds an Ed25519 private key in process memory. Its
address is its public key, and it satisfies
:class:`~multisig_sdk.transactions.TransactionSigner`, so it can co-sign for
any multisig group its public key belongs to.

Examples:
    Creating members and a group::

        alice = Account.generate()
        bob = Account.load_key(os.environ["BOB_PRIVATE_KEY"])
        group = MultisigAddress(1, 1, [alice.public_key(), bob.public_key()])
"""

from __future__ import annotations

import unittest

from . import ed25519, transactions
from .account_address import AccountAddress


class Account:
    """A signing participant backed by an in-memory Ed25519 private key."""

    account_address: AccountAddress
    private_key: ed25519.PrivateKey

    def __init__(
        self, account_address: AccountAddress, private_key: ed25519.PrivateKey
    ):
        self.account_address = account_address
        self.private_key = private_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.account_address == other.account_address
            and self.private_key == other.private_key
        )

    @staticmethod
    def generate() -> Account:
        """Create an account with a fresh random Ed25519 key."""
        private_key = ed25519.PrivateKey.random()
        account_address = AccountAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    @staticmethod
    def load_key(key: str) -> Account:
        """Create an account from a hex encoded 32-byte Ed25519 seed.

        Raises:
            ValueError: If the key is not valid hex or not 32 bytes long.
        """
        private_key = ed25519.PrivateKey.from_str(key)
        account_address = AccountAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    def address(self) -> AccountAddress:
        return self.account_address

    def public_key(self) -> ed25519.PublicKey:
        return self.private_key.public_key()

    def sign(self, data: bytes) -> ed25519.Signature:
        return self.private_key.sign(data)

    async def sign_transaction(
        self, transaction: transactions.RawTransaction
    ) -> ed25519.Signature:
        """Detached signature over the transaction's canonical signing bytes."""
        return self.sign(transaction.signing_bytes())


class Test(unittest.IsolatedAsyncioTestCase):
    def test_load_key(self):
        account = Account.load_key(
            "0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        )
        self.assertEqual(
            str(account.address()),
            "OVF3NJDSBJSYXXK7KMUZLFK5WCLRVU2RTLF54LYRJHBYK42IABWOTV3LAI",
        )
        self.assertEqual(AccountAddress.from_key(account.public_key()), account.address())

    def test_key(self):
        message = b"test message"
        account = Account.generate()
        signature = account.sign(message)
        self.assertTrue(account.public_key().verify(message, signature))

    async def test_sign_transaction(self):
        account = Account.generate()
        transaction = transactions.RawTransaction(
            sender=account.address(),
            receiver=Account.generate().address(),
            amount=10,
            fee=1,
            first_valid=1,
            last_valid=2,
        )
        signature = await account.sign_transaction(transaction)
        self.assertTrue(
            account.public_key().verify(transaction.signing_bytes(), signature)
        )
        self.assertEqual(signature, transaction.sign(account.private_key).signature)


if __name__ == "__main__":
    unittest.main()
