# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signature scheme interfaces consumed by the multisig core.

The multisig core never performs key generation, signing or verification
itself. It only needs a narrow view of the single-key scheme: a public key
that exposes its raw bytes, a private key that can produce a detached
signature, and a signature that exposes its raw bytes. Concrete
implementations live in :mod:`multisig_sdk.ed25519`.

Examples:
    Any object matching these protocols can take part in co-signing::

        def sign_bytes(private_key: PrivateKey, message: bytes) -> Signature:
            return private_key.sign(message)
"""

from __future__ import annotations

from typing_extensions import Protocol

from .bcs import Deserializable, Serializable


class PrivateKey(Deserializable, Serializable, Protocol):
    """Secret key material able to produce detached signatures.

    Methods:
        hex() -> str: Hexadecimal representation of the secret
        public_key() -> PublicKey: The matching verification key
        sign(data: bytes) -> Signature: Detached signature over ``data``
    """

    def hex(self) -> str:
        ...

    def public_key(self) -> PublicKey:
        ...

    def sign(self, data: bytes) -> Signature:
        ...

    @staticmethod
    def parse_hex_input(value: str | bytes, length: int) -> bytes:
        """Parse a hex string (with or without ``0x``) or raw bytes into key bytes.

        Args:
            value: Hex encoded or raw key material.
            length: The expected number of bytes.

        Raises:
            ValueError: If the input is not valid hex or has the wrong length.
            TypeError: If the input is neither ``str`` nor ``bytes``.
        """
        if isinstance(value, str):
            if value[0:2] == "0x":
                value = value[2:]
            data = bytes.fromhex(value)
        elif isinstance(value, bytes):
            data = value
        else:
            raise TypeError("Input value must be a string or bytes.")

        if len(data) != length:
            raise ValueError(f"Expected {length} bytes of key material, got {len(data)}")
        return data


class PublicKey(Deserializable, Serializable, Protocol):
    """A verification key identified by its raw bytes.

    ``to_crypto_bytes`` is the exact byte string that gets hashed into a
    multisig address, so implementations must return it unmodified and
    without any length prefix.
    """

    def to_crypto_bytes(self) -> bytes:
        ...

    def verify(self, data: bytes, signature: Signature) -> bool:
        ...


class Signature(Deserializable, Serializable, Protocol):
    """A detached signature, produced independently of the signed payload."""

    def data(self) -> bytes:
        ...
