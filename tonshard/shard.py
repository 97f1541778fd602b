"""Shard identifiers and account-to-shard matching."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

__all__ = [
    "SHARD_FULL",
    "MAX_SPLIT_DEPTH",
    "MASTERCHAIN_ID",
    "ShardIdent",
    "ShardLookupError",
    "contains_account",
    "account_prefix",
    "find_account",
]

SHARD_FULL = 0x8000_0000_0000_0000
MAX_SPLIT_DEPTH = 60
MASTERCHAIN_ID = -1
_U64_MASK = (1 << 64) - 1


class ShardLookupError(LookupError):
    """Raised when no shard covers a requested account."""


def _lowest_bit(value: int) -> int:
    return value & -value


@dataclass(frozen=True)
class ShardIdent:
    """A shard: a workchain and a tagged 64-bit prefix."""

    workchain: int
    prefix: int

    @classmethod
    def masterchain(cls) -> ShardIdent:
        return cls(MASTERCHAIN_ID, SHARD_FULL)

    @classmethod
    def with_tagged_prefix(cls, workchain: int, prefix: int) -> ShardIdent:
        """Build a shard, validating the tagged prefix."""
        if not 0 < prefix <= _U64_MASK:
            raise ValueError(f"invalid shard prefix {prefix:#x}")
        shard = cls(workchain, prefix)
        if shard.prefix_len() > MAX_SPLIT_DEPTH:
            raise ValueError(f"shard prefix {prefix:#x} is deeper than {MAX_SPLIT_DEPTH}")
        return shard

    def prefix_len(self) -> int:
        """Number of significant prefix bits (the tag bit excluded)."""
        return 63 - (_lowest_bit(self.prefix).bit_length() - 1)

    def is_full(self) -> bool:
        return self.prefix == SHARD_FULL

    def split(self) -> tuple[ShardIdent, ShardIdent]:
        """Split into the left and right child shards."""
        if self.prefix_len() >= MAX_SPLIT_DEPTH:
            raise ValueError("shard cannot be split further")
        half = _lowest_bit(self.prefix) >> 1
        return (
            ShardIdent(self.workchain, self.prefix - half),
            ShardIdent(self.workchain, self.prefix + half),
        )


def account_prefix(account: bytes, length: int) -> int:
    """Return the first ``length`` bits of ``account`` as a left-aligned 64-bit value."""
    if not 0 <= length <= 64:
        raise ValueError(f"prefix length must be within 0..=64, got {length}")
    account = bytes(account)
    if len(account) != 32:
        raise ValueError(f"account must be 32 bytes, got {len(account)}")
    head = int.from_bytes(account[:8], "big")
    mask = (_U64_MASK << (64 - length)) & _U64_MASK
    return head & mask


def contains_account(shard: ShardIdent, account: bytes) -> bool:
    """Whether ``account`` belongs to ``shard``."""
    if shard.prefix == SHARD_FULL:
        return True
    length = shard.prefix_len()
    shift = 64 - length
    return account_prefix(account, length) >> shift == shard.prefix >> shift


def find_account(shards: Mapping[ShardIdent, Mapping[bytes, Any]], account: bytes) -> Any:
    """Find the shard covering ``account`` and return its state there, or ``None``.

    Raises :class:`ShardLookupError` when no shard covers the account.
    """
    account = bytes(account)
    for shard, accounts in shards.items():
        if contains_account(shard, account):
            return accounts.get(account)
    raise ShardLookupError("No suitable shard found: Invalid contract address")