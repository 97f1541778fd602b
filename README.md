# tonshard

Small building blocks for services that watch a sharded TON-style blockchain:

- **Shard routing** (`tonshard.shard`): decide which shard an account
  belongs to, and look an account up across a set of per-shard mappings.
- **Pending message tracking** (`tonshard.pending_messages`): remember
  outgoing messages until they are either seen on chain or expire, and wait
  for their final status.
- **Private key sealing** (`tonshard.encoding`): encrypt and decrypt private
  keys with ChaCha20-Poly1305, bound to a per-record UUID.

## Installation

```
pip install tonshard
```

To run the test suite:

```
pip install "tonshard[test]"
pytest
```

## Shards

A `ShardIdent` is a frozen dataclass made of a `workchain` and a tagged 64-bit
`prefix`. In the tagged prefix, the lowest set bit marks where the prefix ends.
`SHARD_FULL` (`0x8000000000000000`) is the full shard, which holds every
account.

- `ShardIdent.masterchain()` returns the full shard of workchain `-1`.
- `ShardIdent.with_tagged_prefix(workchain, prefix)` checks the prefix before
  it builds the shard. It raises `ValueError` if the prefix is zero, does not
  fit in 64 bits, or is deeper than `MAX_SPLIT_DEPTH` (60) bits.
- `prefix_len()` returns the number of significant prefix bits, and
  `is_full()` tells whether the shard is the full shard.
- `split()` returns the left and right child shards. It raises `ValueError`
  if the shard is already at the maximum depth.

```python
from tonshard.shard import ShardIdent, account_prefix, contains_account

root = ShardIdent.masterchain()
left, right = root.split()

account = bytes.fromhex(
    "459b6795bf4d4c3b930c83fe7625cfee99a762e1e114c749b62bfa751b781fa5"
)
assert contains_account(root, account)
assert contains_account(left, account) != contains_account(right, account)

account_prefix(account, 8)  # top 8 bits of the account, left-aligned in 64 bits
```

Accounts are 32-byte values. `account_prefix(account, length)` returns the
first `length` bits (0 to 64) of the account, left-aligned in a 64-bit
integer. It raises `ValueError` if the length is out of range or the account
is not 32 bytes long.

`find_account(shards, account)` takes a mapping from `ShardIdent` to a
per-shard mapping whose keys are account bytes. It picks the first shard that
contains the account and returns that shard's entry for the account, or
`None` if the shard has no entry for it. If no shard contains the account, it
raises `ShardLookupError`, a subclass of `LookupError`.

## Pending messages

`PendingMessagesQueue(capacity=0)` is safe to use from several threads.
`add_message(account, message_hash, expire_at)` returns a
`concurrent.futures.Future`, which resolves to a `MessageStatus`:

- `deliver_message(account, message_hash)` resolves the message as
  `MessageStatus.DELIVERED` and removes it from the queue. Messages the queue
  does not know are ignored.
- `update(shard, current_utime)` resolves every message that both belongs to
  `shard` and has an `expire_at` earlier than `current_utime` as
  `MessageStatus.EXPIRED`, and removes it. Messages of other shards stay in
  the queue.

Adding the same `(account, message_hash)` pair twice raises
`MessageAlreadyExistsError`, a subclass of `KeyError`. `len(queue)` gives the
number of messages still pending. The `queue.min_expire_at` property gives the
earliest `expire_at` among them, or `NO_EXPIRATION` (`0xFFFFFFFF`) when the
queue is empty.

```python
from tonshard.pending_messages import MessageStatus, PendingMessagesQueue
from tonshard.shard import ShardIdent

queue = PendingMessagesQueue(capacity=10)
account = bytes(32)
message_hash = bytes(32)

status = queue.add_message(account, message_hash, expire_at=10)
queue.update(ShardIdent.masterchain(), current_utime=15)
assert status.result() is MessageStatus.EXPIRED
assert len(queue) == 0
```

To await the status in asyncio code, wrap the future with
`asyncio.wrap_future(status)`.

## Private keys

```python
import os
import uuid

from tonshard.encoding import decrypt_private_key, encrypt_private_key

key = os.urandom(32)
record_id = uuid.uuid4()

sealed = encrypt_private_key(b"\x01" * 32, key, record_id)  # base64 text
assert decrypt_private_key(sealed, key, record_id) == b"\x01" * 32
```

The key must be 32 bytes long; any other length raises `ValueError`. The first
12 bytes of the UUID are used as the nonce, so each UUID must seal only one
key. Decryption raises `DecryptionError`, a subclass of `ValueError`, when the
text is not valid base64 or fails authentication. That happens with a wrong
key, a wrong UUID or tampered text.

## What this package does not do

This package does not talk to the network. It also does not parse blocks,
shard states or account data. `find_account` only returns whatever values you
stored in the per-shard mappings. The package does not build or decode
contract messages such as token transfers, burns or mints, and it does not run
contract getters. It has no command-line interface.