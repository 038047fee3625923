# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Offline walkthrough of a 2-of-3 multisig account.

Alice, Bob and Chad form a group in which any two of them can authorize a
payment. Each member signs on their own, the partial authorizations travel as
hex encoded BCS, and they are merged into a complete signed transaction.
"""

import asyncio

from multisig_sdk.account import Account
from multisig_sdk.multisig import ConflictingSignatureError, MultisigAddress
from multisig_sdk.transactions import RawTransaction, SignedTransaction

from .common import FIRST_VALID, GENESIS_ID, VALIDITY_WINDOW

should_wait = True


def wait():
    """Wait for user to press Enter before starting next section."""
    if should_wait:
        input("\nPress Enter to continue...")


async def main(should_wait_input=True):
    global should_wait
    should_wait = should_wait_input

    # :!:>section_1
    alice = Account.generate()
    bob = Account.generate()
    chad = Account.generate()

    print("\n=== Account addresses ===")
    print(f"Alice: {alice.address()}")
    print(f"Bob:   {bob.address()}")
    print(f"Chad:  {chad.address()}")  # <:!:section_1

    wait()

    # :!:>section_2
    threshold = 2

    multisig_address = MultisigAddress(
        1, threshold, [alice.public_key(), bob.public_key(), chad.public_key()]
    )

    print("\n=== 2-of-3 Multisig account ===")
    print(f"Account:         {multisig_address!r}")
    print(f"Account address: {multisig_address}")  # <:!:section_2

    wait()

    # :!:>section_3
    raw_transaction = RawTransaction(
        sender=multisig_address.address(),
        receiver=chad.address(),
        amount=100,
        fee=1_000,
        first_valid=FIRST_VALID,
        last_valid=FIRST_VALID + VALIDITY_WINDOW,
        genesis_id=GENESIS_ID,
        note=b"multisig example",
    )

    alice_part = await multisig_address.sign(alice, raw_transaction)
    bob_part = await multisig_address.sign(bob, raw_transaction)

    print("\n=== Partial authorizations ===")
    print(f"Alice: {alice_part.multisig}, complete: {alice_part.is_complete()}")
    print(f"Bob:   {bob_part.multisig}, complete: {bob_part.is_complete()}")

    alice_hex = alice_part.to_bytes().hex()
    print(f"Alice's partial transaction, as shared: {alice_hex}")  # <:!:section_3

    wait()

    # :!:>section_4
    received = SignedTransaction.from_bytes(bytes.fromhex(alice_hex))
    signed_transaction = SignedTransaction.merge(received, bob_part)

    print("\n=== Merged authorization ===")
    print(f"Signatures: {signed_transaction.multisig.signature_count()}")
    print(f"Threshold:  {signed_transaction.multisig.threshold}")
    print(f"Complete:   {signed_transaction.is_complete()}")

    for index, subsig in enumerate(signed_transaction.multisig.subsigs):
        if subsig.signature is None:
            continue
        valid = subsig.key.verify(raw_transaction.signing_bytes(), subsig.signature)
        print(f"Slot {index} signature valid: {valid}")

    assert signed_transaction.is_complete()  # <:!:section_4

    wait()

    # :!:>section_5
    print("\n=== Conflicting slot ===")
    forged = alice_part.multisig.with_signature(0, bob.sign(b"not the transaction"))
    try:
        SignedTransaction.merge(alice_part, raw_transaction.attach_multisig(forged))
    except ConflictingSignatureError as e:
        print(f"Rejected: {e}")  # <:!:section_5


if __name__ == "__main__":
    asyncio.run(main())
