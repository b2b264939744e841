# Core modules
from .transaction import Transaction, TransactionKind, create_reward_transaction
from .block import Block
from .chain import Ledger
from .mempool import PendingPool

# Proof-of-work
from .pow import mine_block, calculate_hash, MiningExceededError, DigestUnavailableError

# Service
from .service import LedgerService

__all__ = [
    # Core
    "Transaction",
    "TransactionKind",
    "create_reward_transaction",
    "Block",
    "Ledger",
    "PendingPool",
    # Proof-of-work
    "mine_block",
    "calculate_hash",
    "MiningExceededError",
    "DigestUnavailableError",
    # Service
    "LedgerService",
]
