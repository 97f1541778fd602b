"""Tracking of sent messages until they are delivered or expire."""

from __future__ import annotations

import enum
import threading
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass

from .shard import ShardIdent, contains_account

__all__ = [
    "NO_EXPIRATION",
    "MessageStatus",
    "MessageAlreadyExistsError",
    "PendingMessagesQueue",
]

NO_EXPIRATION = 0xFFFF_FFFF


class MessageStatus(enum.Enum):
    DELIVERED = "delivered"
    EXPIRED = "expired"


class MessageAlreadyExistsError(KeyError):
    """Raised when a message with the same account and hash is already pending."""

    def __str__(self) -> str:
        return "Already exists"


@dataclass
class _PendingMessage:
    status: Future
    expire_at: int

    def resolve(self, status: MessageStatus) -> None:
        if self.status.done():
            return
        try:
            self.status.set_result(status)
        except InvalidStateError:
            pass


class PendingMessagesQueue:
    """Thread-safe set of pending messages, each with a future for its final status."""

    def __init__(self, capacity: int = 0) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._entries: dict[tuple[bytes, bytes], _PendingMessage] = {}
        self._min_expire_at = NO_EXPIRATION

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def min_expire_at(self) -> int:
        """Earliest expiration among pending messages, or ``NO_EXPIRATION``."""
        return self._min_expire_at

    def add_message(self, account: bytes, message_hash: bytes, expire_at: int) -> Future:
        """Register a message; the returned future resolves to its :class:`MessageStatus`."""
        key = (bytes(account), bytes(message_hash))
        with self._lock:
            if key in self._entries:
                raise MessageAlreadyExistsError(key)
            status: Future = Future()
            self._entries[key] = _PendingMessage(status, expire_at)
            self._min_expire_at = min(self._min_expire_at, expire_at)
            return status

    def deliver_message(self, account: bytes, message_hash: bytes) -> None:
        """Mark a message as delivered; unknown messages are ignored."""
        with self._lock:
            message = self._entries.pop((bytes(account), bytes(message_hash)), None)
            if message is None:
                return
            message.resolve(MessageStatus.DELIVERED)
            if self._min_expire_at != message.expire_at:
                return
            self._min_expire_at = min(
                (item.expire_at for item in self._entries.values()), default=NO_EXPIRATION
            )

    def update(self, shard: ShardIdent, current_utime: int) -> None:
        """Expire messages of ``shard`` whose expiration time is before ``current_utime``."""
        if current_utime <= self._min_expire_at:
            return
        with self._lock:
            kept: dict[tuple[bytes, bytes], _PendingMessage] = {}
            for key, item in self._entries.items():
                if current_utime <= item.expire_at or not contains_account(shard, key[0]):
                    kept[key] = item
                else:
                    item.resolve(MessageStatus.EXPIRED)
            self._entries = kept
            self._min_expire_at = min(
                (item.expire_at for item in kept.values()), default=NO_EXPIRATION
            )