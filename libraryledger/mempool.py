import logging
import threading

logger = logging.getLogger(__name__)


class PendingPool:
    """Ordered pool of transactions waiting for the next seal."""

    def __init__(self):
        self._pending_txs = []
        self._seen_tx_ids = set()  # Dedup tracking
        self._lock = threading.Lock()

    def add_transaction(self, tx):
        """
        Adds a transaction to the pool unless its id is already pending.
        """

        with self._lock:
            if tx.transaction_id in self._seen_tx_ids:
                logger.warning("PendingPool: Duplicate transaction rejected %s", tx.transaction_id)
                return False

            self._pending_txs.append(tx)
            self._seen_tx_ids.add(tx.transaction_id)

            return True

    def snapshot(self):
        """
        Returns pending transactions in arrival order without clearing the pool.
        """
        with self._lock:
            return self._pending_txs[:]

    def replace(self, txs):
        """
        Replace the pool contents, e.g. with the reward seeded after a seal.
        """
        with self._lock:
            self._pending_txs = list(txs)
            self._seen_tx_ids = {tx.transaction_id for tx in self._pending_txs}

    def size(self):
        with self._lock:
            return len(self._pending_txs)

    def __len__(self):
        return self.size()
