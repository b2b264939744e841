import copy
import logging
from datetime import datetime, timezone
from typing import List, Optional

from libraryledger.config import HASH_ENCODING_VERSION
from libraryledger.pow import calculate_hash, mine_block
from libraryledger.transaction import Transaction, format_timestamp

logger = logging.getLogger(__name__)


class Block:
    def __init__(
        self,
        index: int,
        previous_hash: str,
        timestamp: Optional[datetime] = None,
    ):
        self.index = index
        self.previous_hash = previous_hash
        self.timestamp: datetime = (
            datetime.now(timezone.utc)
            if timestamp is None
            else timestamp
        )
        self.transactions: List[Transaction] = []
        self.nonce: int = 0
        self._frozen = False
        self.hash: str = self.compute_hash()

    @property
    def frozen(self) -> bool:
        """True once mining has started; the transaction list is fixed."""
        return self._frozen

    # -------------------------
    # HASH INPUT (versioned canonical encoding)
    # -------------------------
    def to_hash_dict(self):
        return {
            "v": HASH_ENCODING_VERSION,
            "index": self.index,
            "timestamp": format_timestamp(self.timestamp),
            "previous_hash": self.previous_hash,
            "transactions": [
                tx.to_dict() for tx in self.transactions
            ],
            "nonce": self.nonce,
        }

    def to_dict(self):
        return {
            **self.to_hash_dict(),
            "hash": self.hash,
        }

    def compute_hash(self) -> str:
        return calculate_hash(self.to_hash_dict())

    def add_transaction(self, tx: Optional[Transaction]) -> bool:
        if tx is None:
            logger.warning("Block %s: rejected empty transaction", self.index)
            return False

        if self._frozen:
            logger.warning("Block %s: rejected transaction, block is being mined", self.index)
            return False

        self.transactions.append(tx)
        self.hash = self.compute_hash()
        return True

    def mine(self, difficulty: int, max_nonce=None, timeout_seconds=None, cancel_event=None,
             progress_callback=None):
        """
        Search for a nonce whose hash has `difficulty` leading hex zeros.

        The transaction list is frozen while the search runs. On an invalid
        difficulty, cancellation, timeout or nonce exhaustion the error is
        raised and the block is left as it was, unfrozen.
        """
        was_frozen = self._frozen
        self._frozen = True
        try:
            return mine_block(
                self,
                difficulty,
                max_nonce=max_nonce,
                timeout_seconds=timeout_seconds,
                cancel_event=cancel_event,
                logger=logger,
                progress_callback=progress_callback,
            )
        except Exception:
            self._frozen = was_frozen
            raise

    def copy(self) -> "Block":
        return copy.deepcopy(self)

    def __repr__(self):
        return f"Block(#{self.index}, txs={len(self.transactions)}, hash={self.hash[:8]})"
