from .block import Block
from .config import DIFFICULTY, GENESIS_PREVIOUS_HASH, MAX_DIFFICULTY, MINING_REWARD
from .mempool import PendingPool
from .pow import canonical_bytes
from .transaction import create_reward_transaction, kind_value
import copy
import logging
import threading

logger = logging.getLogger(__name__)


def _check_difficulty(difficulty):
    if not isinstance(difficulty, int) or isinstance(difficulty, bool):
        raise ValueError("Difficulty must be an integer")
    if difficulty < 0 or difficulty > MAX_DIFFICULTY:
        raise ValueError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}, got {difficulty}")


class Ledger:
    """
    Append-only chain of sealed blocks plus the pool of pending transactions.

    Mutations (add_transaction, seal_pending_block) are serialized by a write
    lock. The chain list itself is guarded by a separate lock held only long
    enough to append or snapshot, so readers are not blocked while a block
    is being mined.
    """

    def __init__(self, difficulty=DIFFICULTY, mining_reward=MINING_REWARD):
        _check_difficulty(difficulty)
        self._difficulty = difficulty
        self.mining_reward = mining_reward
        self._chain = []
        self._pending = PendingPool()
        self._sealed_tx_ids = set()
        self._write_lock = threading.Lock()
        self._lock = threading.RLock()
        self._create_genesis_block()

    def _create_genesis_block(self):
        """
        Creates the genesis block: no transactions, sentinel previous hash.
        """
        genesis_block = Block(index=0, previous_hash=GENESIS_PREVIOUS_HASH)
        self._chain.append(genesis_block)

    @property
    def difficulty(self):
        return self._difficulty

    @difficulty.setter
    def difficulty(self, value):
        _check_difficulty(value)
        self._difficulty = value

    def _snapshot(self):
        with self._lock:
            return list(self._chain)

    @property
    def last_block(self):
        """
        Returns a copy of the most recent block in the chain.
        """
        with self._lock:
            return self._chain[-1].copy()

    @property
    def height(self):
        """Returns the current chain height (number of blocks)."""
        with self._lock:
            return len(self._chain)

    def blocks(self):
        return [block.copy() for block in self._snapshot()]

    def block_at(self, index):
        with self._lock:
            return self._chain[index].copy()

    def pending_transactions(self):
        return [copy.copy(tx) for tx in self._pending.snapshot()]

    def add_transaction(self, tx):
        """
        Queue a transaction for the next seal. Returns False for a missing,
        unencodable, pending or already sealed transaction.
        """
        if tx is None:
            logger.warning("Ledger: rejected empty transaction")
            return False

        try:
            canonical_bytes(tx.to_dict())
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Ledger: rejected unencodable transaction %s: %s", tx.transaction_id, e)
            return False

        with self._write_lock:
            if tx.transaction_id in self._sealed_tx_ids:
                logger.warning("Ledger: rejected already sealed transaction %s", tx.transaction_id)
                return False
            return self._pending.add_transaction(tx)

    def seal_pending_block(self, reward_address, cancel_event=None, timeout_seconds=None):
        """
        Package every pending transaction into a new block, mine it, append it
        and seed the pool with a single reward transaction.

        MiningExceededError propagates untouched; in that case neither the
        chain nor the pending pool has changed.
        """
        with self._write_lock:
            with self._lock:
                previous = self._chain[-1]
                index = len(self._chain)

            pending_txs = self._pending.snapshot()
            block = Block(index=index, previous_hash=previous.hash)
            for tx in pending_txs:
                block.add_transaction(copy.copy(tx))

            logger.info("Sealing block #%d with %d transaction(s)", index, len(pending_txs))
            block.mine(
                self._difficulty,
                timeout_seconds=timeout_seconds,
                cancel_event=cancel_event,
            )

            with self._lock:
                self._chain.append(block)
            self._sealed_tx_ids.update(tx.transaction_id for tx in block.transactions)

            self._pending.replace([create_reward_transaction(self.mining_reward, reward_address)])
            logger.info("Block #%d sealed: %s", block.index, block.hash)
            return block.copy()

    def is_valid(self):
        """
        Re-verify every block after genesis. Stops at the first mismatch.
        """
        chain = self._snapshot()

        for i in range(1, len(chain)):
            current = chain[i]
            previous = chain[i - 1]

            # Check the stored hash against the block contents
            if current.hash != current.compute_hash():
                logger.warning("Chain validation failed: Invalid hash at block %d", i)
                return False

            # Check previous hash linkage
            if current.previous_hash != previous.hash:
                logger.warning("Chain validation failed: Invalid previous_hash at block %d", i)
                return False

        return True

    def _sealed_transactions(self):
        for block in self._snapshot()[1:]:
            for tx in list(block.transactions):
                yield copy.copy(tx)

    def transactions_for_user(self, user_id):
        return [tx for tx in self._sealed_transactions() if tx.user_id == user_id]

    def transactions_for_book(self, book_id):
        return [tx for tx in self._sealed_transactions() if tx.book_id == book_id]

    def transactions_by_kind(self, kind):
        wanted = kind_value(kind)
        return [tx for tx in self._sealed_transactions() if tx.kind == wanted]

    def to_dict_list(self) -> list:
        """Export chain as list of block dictionaries."""
        return [block.to_dict() for block in self._snapshot()]
