# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Ed25519 keys and signatures for multisig participants.

Every member of a multisig group is identified by a 32-byte Ed25519 public
key. The key bytes are hashed, in group order, into the multisig account
address, so :class:`PublicKey` is an immutable value object with byte
equality and hashing. Signing is delegated to PyNaCl.

Examples:
    Generating a participant and signing::

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(b"payload")
        assert public_key.verify(b"payload", signature)
"""

from __future__ import annotations

import unittest

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer


class PrivateKey(asymmetric_crypto.PrivateKey):
    """Ed25519 signing key wrapping a NaCl :class:`SigningKey`.

    Attributes:
        LENGTH: The byte length of an Ed25519 seed (32).
        key: The underlying NaCl signing key.
    """

    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return self.hex()

    @staticmethod
    def from_hex(value: str | bytes) -> PrivateKey:
        """Create a private key from a 32-byte seed, hex encoded or raw.

        Raises:
            ValueError: If the seed is malformed or not 32 bytes long.
        """
        seed = PrivateKey.parse_hex_input(value, PrivateKey.LENGTH)
        return PrivateKey(SigningKey(seed))

    @staticmethod
    def from_str(value: str) -> PrivateKey:
        return PrivateKey.from_hex(value.strip())

    def hex(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        return Signature(self.key.sign(data).signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        key = deserializer.to_bytes()
        if len(key) != PrivateKey.LENGTH:
            raise Exception("Length mismatch")

        return PrivateKey(SigningKey(key))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class PublicKey(asymmetric_crypto.PublicKey):
    """Ed25519 verification key, the identity of a multisig participant.

    Two public keys are equal exactly when their 32 raw bytes are equal, and
    equal keys hash alike, so keys can be looked up by value in a group's
    ordered key list or used as dictionary keys.

    Attributes:
        LENGTH: The byte length of an Ed25519 public key (32).
        key: The underlying NaCl verify key.
    """

    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key.encode() == other.key.encode()

    def __hash__(self) -> int:
        return hash(self.key.encode())

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def __repr__(self) -> str:
        return f"PublicKey({self})"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey.from_crypto_bytes(bytes.fromhex(value))

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> PublicKey:
        """Wrap 32 raw key bytes.

        Raises:
            ValueError: If ``indata`` is not exactly 32 bytes.
        """
        if len(indata) != PublicKey.LENGTH:
            raise ValueError(
                f"Expected {PublicKey.LENGTH} bytes for a public key, got {len(indata)}"
            )
        return PublicKey(VerifyKey(bytes(indata)))

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        try:
            self.key.verify(data, signature.data())
        except BadSignatureError:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        key = deserializer.to_bytes()
        if len(key) != PublicKey.LENGTH:
            raise Exception("Length mismatch")

        return PublicKey(VerifyKey(key))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class Signature(asymmetric_crypto.Signature):
    """A 64-byte detached Ed25519 signature."""

    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = bytes(signature)

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __hash__(self) -> int:
        return hash(self.signature)

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def __repr__(self) -> str:
        return f"Signature({self})"

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        signature = deserializer.to_bytes()
        if len(signature) != Signature.LENGTH:
            raise Exception("Length mismatch")

        return Signature(signature)

    @staticmethod
    def from_str(value: str) -> Signature:
        if value[0:2] == "0x":
            value = value[2:]
        return Signature(bytes.fromhex(value))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class Test(unittest.TestCase):
    PRIVATE_KEY_1 = "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
    PRIVATE_KEY_2 = "0x1e70e49b78f976644e2c51754a2f049d3ff041869c669523ba95b172c7329901"

    def test_public_key_derivation(self):
        self.assertEqual(
            str(PrivateKey.from_str(self.PRIVATE_KEY_1).public_key()),
            "0x754bb6a4720a658bdd5f532995955db0971ad3519acbde2f1149c3857348006c",
        )
        self.assertEqual(
            str(PrivateKey.from_str(self.PRIVATE_KEY_2).public_key()),
            "0x1634cd4607073f2be4a6f2aadc2b866ddb117398a675f2096ed906b20e0bf2c9",
        )

    def test_deterministic_signature(self):
        signature = PrivateKey.from_str(self.PRIVATE_KEY_2).sign(b"multisig")
        self.assertEqual(
            signature,
            Signature.from_str(
                "02e90d8f300d79963cb7159ffa6f620f5bba4af5d32a7176bfb5480b43897cf4"
                "886bbb4042182f4647c9b04f02dbf989966f0facceec52d22bdcc7ce631bfc0c"
            ),
        )

    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertTrue(public_key.verify(in_value, signature))
        self.assertFalse(public_key.verify(b"other_message", signature))

    def test_public_key_value_semantics(self):
        private_key = PrivateKey.from_str(self.PRIVATE_KEY_1)
        first = private_key.public_key()
        second = PublicKey.from_crypto_bytes(first.to_crypto_bytes())
        self.assertEqual(first, second)
        self.assertEqual(hash(first), hash(second))
        self.assertEqual(len({first, second}), 1)
        self.assertNotEqual(first, PrivateKey.from_str(self.PRIVATE_KEY_2).public_key())

    def test_public_key_length(self):
        with self.assertRaises(ValueError):
            PublicKey.from_crypto_bytes(b"\x01" * 31)

    def test_private_key_length(self):
        with self.assertRaises(ValueError):
            PrivateKey.from_hex("0x0102")

    def test_public_key_serialization(self):
        public_key = PrivateKey.random().public_key()

        ser = Serializer()
        public_key.serialize(ser)
        ser_public_key = PublicKey.deserialize(Deserializer(ser.output()))
        self.assertEqual(public_key, ser_public_key)

    def test_signature_serialization(self):
        signature = PrivateKey.random().sign(b"another_message")

        ser = Serializer()
        signature.serialize(ser)
        self.assertEqual(len(ser.output()), 1 + Signature.LENGTH)
        ser_signature = Signature.deserialize(Deserializer(ser.output()))
        self.assertEqual(signature, ser_signature)


if __name__ == "__main__":
    unittest.main()
