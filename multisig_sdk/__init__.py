# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Multisig SDK - Threshold multisig accounts over Ed25519 keys.

A multisig account is identified by the SHA-512/256 digest of its version, its
threshold and its ordered member keys. Members co-sign transactions
independently. Each produces a partial authorization holding only its own
signature, and the partial authorizations are merged until the threshold is
reached.

Core Features:
- **Address Derivation**: Deterministic, order-sensitive multisig addresses
  with the checksummed base32 text encoding
- **Co-Signing**: Validated per-member signing with sender and membership checks
- **Merging**: Combine partial authorizations and detect conflicting slots
- **BCS Serialization**: Canonical encoding for transactions and authorizations
- **CLI**: Derive, sign and merge from the command line

Quick Start:
    Deriving an account and collecting signatures::

        import asyncio
        from multisig_sdk.account import Account
        from multisig_sdk.multisig import MultisigAddress
        from multisig_sdk.transactions import RawTransaction, SignedTransaction

        async def main():
            alice, bob, chad = Account.generate(), Account.generate(), Account.generate()
            group = MultisigAddress(
                1, 2, [alice.public_key(), bob.public_key(), chad.public_key()]
            )

            transaction = RawTransaction(
                sender=group.address(),
                receiver=chad.address(),
                amount=1_000,
                fee=1_000,
                first_valid=1,
                last_valid=1_000,
            )
            alice_part = await group.sign(alice, transaction)
            bob_part = await group.sign(bob, transaction)
            signed = SignedTransaction.merge(alice_part, bob_part)
            assert signed.is_complete()

        asyncio.run(main())

Module Overview:
    - :mod:`multisig_sdk.account`: Local single-key signing participants
    - :mod:`multisig_sdk.account_address`: Identifiers and checksummed text form
    - :mod:`multisig_sdk.asymmetric_crypto`: Key and signature protocols
    - :mod:`multisig_sdk.bcs`: Binary Canonical Serialization
    - :mod:`multisig_sdk.cli`: Command-line interface
    - :mod:`multisig_sdk.ed25519`: Ed25519 keys and signatures
    - :mod:`multisig_sdk.multisig`: Multisig accounts, subsigs and merging
    - :mod:`multisig_sdk.transactions`: Transactions and signed envelopes
"""
