"""
Settlement Dutch Auction Address Type

Accounts are 20-byte addresses rendered with the EIP-55 mixed-case
checksum (Keccak-256 of the lowercase hex form).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union

from Crypto.Hash import keccak

from dasettle.constants import ADDRESS_SIZE


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (pre-standard SHA3 padding)."""
    hasher = keccak.new(digest_bits=256)
    hasher.update(data)
    return hasher.digest()


def to_checksum_hex(data: bytes) -> str:
    """Render 20 address bytes as an EIP-55 checksummed hex string."""
    lower = data.hex()
    digest = keccak256(lower.encode("ascii")).hex()
    chars = []
    for i, ch in enumerate(lower):
        if ch.isalpha() and int(digest[i], 16) >= 8:
            chars.append(ch.upper())
        else:
            chars.append(ch)
    return "0x" + "".join(chars)


@dataclass(frozen=True, slots=True)
class Address:
    """
    Account address.

    SIZE: 20 bytes
    TEXT FORM: 0x-prefixed EIP-55 checksummed hex
    """
    data: bytes = field(default_factory=lambda: bytes(ADDRESS_SIZE))

    def __post_init__(self):
        if len(self.data) != ADDRESS_SIZE:
            raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(self.data)}")

    def __bytes__(self) -> bytes:
        return self.data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.data == other.data
        return False

    def __hash__(self) -> int:
        return hash(self.data)

    def __lt__(self, other: Address) -> bool:
        return self.data < other.data

    def __str__(self) -> str:
        return self.checksum()

    def __repr__(self) -> str:
        return f"Address({self.checksum()})"

    def hex(self) -> str:
        return "0x" + self.data.hex()

    def checksum(self) -> str:
        return to_checksum_hex(self.data)

    def is_zero(self) -> bool:
        return self.data == bytes(ADDRESS_SIZE)

    @classmethod
    def zero(cls) -> Address:
        return cls(bytes(ADDRESS_SIZE))

    @classmethod
    def from_hex(cls, hex_string: str) -> Address:
        """
        Parse a hex address.

        All-lowercase and all-uppercase input is accepted as is; mixed-case
        input must carry a valid EIP-55 checksum.
        """
        body = hex_string[2:] if hex_string[:2].lower() == "0x" else hex_string
        if len(body) != ADDRESS_SIZE * 2:
            raise ValueError(f"Address must be {ADDRESS_SIZE * 2} hex chars, got {len(body)}")
        try:
            data = bytes.fromhex(body)
        except ValueError as exc:
            raise ValueError(f"Address is not valid hex: {hex_string}") from exc

        address = cls(data)
        if body != body.lower() and body != body.upper():
            if address.checksum()[2:] != body:
                raise ValueError(f"Bad EIP-55 checksum: {hex_string}")
        return address

    @classmethod
    def from_seed(cls, seed: Union[str, bytes]) -> Address:
        """Deterministic address from a label (last 20 bytes of its Keccak-256)."""
        if isinstance(seed, str):
            seed = seed.encode("utf-8")
        return cls(keccak256(seed)[-ADDRESS_SIZE:])

    @classmethod
    def coerce(cls, value: Union[Address, str, bytes]) -> Address:
        """Accept an Address, hex string or raw bytes."""
        if isinstance(value, Address):
            return value
        if isinstance(value, bytes):
            return cls(value)
        return cls.from_hex(value)


ZERO_ADDRESS: Address = Address.zero()
