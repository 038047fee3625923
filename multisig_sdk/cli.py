# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface for deriving multisig accounts and collecting signatures.

Supported commands:
- address: Print the address of a multisig account
- sign: Co-sign a hex encoded transaction as one member of the group
- merge: Combine partially signed copies of a transaction

Members are given by their single-key account addresses, in group order.
Transactions travel as hex encoded BCS so they can be passed between
co-signers over any channel.

Examples:
    Derive a 2-of-3 account::

        python -m multisig_sdk.cli address --threshold 2 \
            --public-key DN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA \
            --public-key BFRTECKTOOE7A5LHCF3TTEOH2A7BW46IYT2SX5VP6ANKEXHZYJY77SJTVM \
            --public-key 47YPQTIGQEO7T4Y4RWDYWEKV6RTR2UNBQXBABEEGM72ESWDQNCQ52OPASU

    Co-sign, reading the member key from the environment::

        export MULTISIG_PRIVATE_KEY=0x...
        python -m multisig_sdk.cli sign --threshold 2 --public-key ... \
            --transaction 01...

    Merge two partial signatures::

        python -m multisig_sdk.cli merge --signed 01... --signed 01...

Environment Variables:
    MULTISIG_PRIVATE_KEY: Member key used by ``sign`` when --private-key-path is
        not given.
    MULTISIG_LOG_LEVEL: Logging level name, defaults to WARNING.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import unittest
from typing import List

from . import ed25519
from .account import Account
from .account_address import AccountAddress, ParseAddressError
from .bcs import Deserializer, Serializer
from .multisig import MultisigAddress, MultisigError, MultisigSubsig
from .transactions import RawTransaction, SignedTransaction, TransactionMismatchError


def public_key(indata: str) -> ed25519.PublicKey:
    """Parse a single-key account address into the member's public key."""
    try:
        address = AccountAddress.from_str(indata)
    except ParseAddressError as e:
        raise argparse.ArgumentTypeError(str(e))
    return ed25519.PublicKey.from_crypto_bytes(address.address)


def hex_bytes(indata: str) -> bytes:
    if indata[0:2] == "0x":
        indata = indata[2:]
    try:
        return bytes.fromhex(indata)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid hex input: {e}")


def load_signer(private_key_path: str | None) -> Account:
    """Load the co-signing member from a key file, or from MULTISIG_PRIVATE_KEY."""
    if private_key_path is not None:
        with open(private_key_path) as file:
            return Account.load_key(file.read())

    key = os.getenv("MULTISIG_PRIVATE_KEY")
    if key is None:
        raise ValueError(
            "Missing signer key, pass --private-key-path or set MULTISIG_PRIVATE_KEY"
        )
    return Account.load_key(key)


def derive_address(version: int, threshold: int, keys: List[ed25519.PublicKey]) -> str:
    return str(MultisigAddress(version, threshold, keys))


async def cosign(
    multisig_address: MultisigAddress, signer: Account, transaction_bytes: bytes
) -> SignedTransaction:
    transaction = Deserializer(transaction_bytes).struct(RawTransaction)
    return await multisig_address.sign(signer, transaction)


def merge(signed_transactions: List[bytes]) -> SignedTransaction:
    partials = [
        Deserializer(indata).struct(SignedTransaction) for indata in signed_transactions
    ]
    return SignedTransaction.merge(*partials)


async def main(args: List[str]) -> int:
    parser = argparse.ArgumentParser(description="Multisig account tooling")
    parser.add_argument(
        "command",
        type=str,
        help="The command to execute",
        choices=["address", "sign", "merge"],
    )
    parser.add_argument(
        "--version",
        help="Multisig version",
        type=int,
        default=MultisigAddress.SUPPORTED_VERSION,
    )
    parser.add_argument("--threshold", help="Number of signatures required", type=int)
    parser.add_argument(
        "--public-key",
        help="Member account address, repeated once per member in group order",
        action="append",
        type=public_key,
        default=[],
    )
    parser.add_argument(
        "--transaction",
        help="Hex encoded unsigned transaction to co-sign",
        type=hex_bytes,
    )
    parser.add_argument(
        "--private-key-path",
        help="Path to a file containing the co-signer's private key",
        type=str,
    )
    parser.add_argument(
        "--signed",
        help="Hex encoded partially signed transaction, repeated per copy",
        action="append",
        type=hex_bytes,
        default=[],
    )
    parsed_args = parser.parse_args(args)

    logging.basicConfig(level=os.getenv("MULTISIG_LOG_LEVEL", "WARNING").upper())

    if parsed_args.command in ("address", "sign"):
        if parsed_args.threshold is None:
            parser.error("Missing required argument '--threshold'")
        if len(parsed_args.public_key) == 0:
            parser.error("Missing required argument '--public-key'")
    if parsed_args.command == "sign" and parsed_args.transaction is None:
        parser.error("Missing required argument '--transaction'")
    if parsed_args.command == "merge" and len(parsed_args.signed) == 0:
        parser.error("Missing required argument '--signed'")

    try:
        if parsed_args.command == "address":
            print(
                derive_address(
                    parsed_args.version, parsed_args.threshold, parsed_args.public_key
                )
            )
        elif parsed_args.command == "sign":
            multisig_address = MultisigAddress(
                parsed_args.version, parsed_args.threshold, parsed_args.public_key
            )
            signer = load_signer(parsed_args.private_key_path)
            signed = await cosign(multisig_address, signer, parsed_args.transaction)
            print(signed.to_bytes().hex())
        elif parsed_args.command == "merge":
            merged = merge(parsed_args.signed)
            print(merged.to_bytes().hex())
            print(
                f"{merged.multisig.signature_count()} of "
                f"{merged.multisig.threshold} signatures collected, "
                f"complete: {merged.is_complete()}",
                file=sys.stderr,
            )
    except (
        MultisigError,
        ParseAddressError,
        TransactionMismatchError,
        ValueError,
    ) as e:
        logging.error(e)
        return 1
    return 0


class Test(unittest.IsolatedAsyncioTestCase):
    REFERENCE_KEYS = [
        "DN7MBMCL5JQ3PFUQS7TMX5AH4EEKOBJVDUF4TCV6WERATKFLQF4MQUPZTA",
        "BFRTECKTOOE7A5LHCF3TTEOH2A7BW46IYT2SX5VP6ANKEXHZYJY77SJTVM",
        "47YPQTIGQEO7T4Y4RWDYWEKV6RTR2UNBQXBABEEGM72ESWDQNCQ52OPASU",
    ]

    def test_derive_address(self):
        keys = [public_key(addr) for addr in self.REFERENCE_KEYS]
        self.assertEqual(
            derive_address(1, 2, keys),
            "RWJLJCMQAFZ2ATP2INM2GZTKNL6OULCCUBO5TQPXH3V2KR4AG7U5UA5JNM",
        )

    def test_public_key_argument(self):
        with self.assertRaises(argparse.ArgumentTypeError):
            public_key("not-an-address")

    async def test_sign_and_merge(self):
        members = [Account.generate() for _ in range(3)]
        group = MultisigAddress(1, 2, [member.public_key() for member in members])
        transaction = RawTransaction(
            sender=group.address(),
            receiver=members[0].address(),
            amount=1,
            fee=1,
            first_valid=1,
            last_valid=10,
        )
        first = await cosign(group, members[0], transaction.to_bytes())
        second = await cosign(group, members[1], transaction.to_bytes())
        merged = merge([first.to_bytes(), second.to_bytes()])
        self.assertTrue(merged.is_complete())
        self.assertEqual(merged.transaction, transaction)

    async def test_merge_rejects_zero_threshold(self):
        keys = [public_key(addr) for addr in self.REFERENCE_KEYS]
        transaction = RawTransaction(
            sender=MultisigAddress(1, 2, keys).address(),
            receiver=AccountAddress(bytes(32)),
            amount=1,
            fee=1,
            first_valid=1,
            last_valid=10,
        )
        ser = Serializer()
        transaction.serialize(ser)
        ser.option(None, Serializer.struct)
        ser.bool(True)
        ser.u8(1)
        ser.u8(0)
        ser.sequence([MultisigSubsig(key) for key in keys], Serializer.struct)
        with self.assertLogs(level="ERROR"):
            self.assertEqual(await main(["merge", "--signed", ser.output().hex()]), 1)

    async def test_main_reports_errors(self):
        outsider = Account.generate()
        os.environ["MULTISIG_PRIVATE_KEY"] = outsider.private_key.hex()
        try:
            keys = [public_key(addr) for addr in self.REFERENCE_KEYS]
            transaction = RawTransaction(
                sender=MultisigAddress(1, 2, keys).address(),
                receiver=outsider.address(),
                amount=1,
                fee=1,
                first_valid=1,
                last_valid=10,
            )
            args = ["sign", "--threshold", "2"]
            for addr in self.REFERENCE_KEYS:
                args.extend(["--public-key", addr])
            args.extend(["--transaction", transaction.to_bytes().hex()])
            with self.assertLogs(level="ERROR"):
                self.assertEqual(await main(args), 1)
        finally:
            del os.environ["MULTISIG_PRIVATE_KEY"]


def run():
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()
