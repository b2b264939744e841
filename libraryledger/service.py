import logging

from .chain import Ledger
from .config import (
    AUTO_SEAL_THRESHOLD,
    LIBRARY_SIGNING_KEY,
    MINING_REWARD_ADDRESS,
    NO_BOOK_ID,
    NO_BOOK_TITLE,
)
from .transaction import Transaction, TransactionKind

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Records library events on a ledger owned by the caller.

    Every transaction is signed with the library key before it is queued.
    Sealing happens on schedule (seal_pending) or right away once a loan
    modification leaves AUTO_SEAL_THRESHOLD transactions pending.
    """

    def __init__(self, ledger=None, reward_address=MINING_REWARD_ADDRESS, signing_key=LIBRARY_SIGNING_KEY):
        self.ledger = ledger if ledger is not None else Ledger()
        self.reward_address = reward_address
        self.signing_key = signing_key

    def _record(self, kind, user_id, username, book_id, book_title, details):
        tx = Transaction(kind, user_id, username, book_id, book_title, details)
        tx.sign(self.signing_key)
        self.ledger.add_transaction(tx)
        logger.info("%s transaction added to pending transactions", tx.kind)
        return tx

    def record_loan(self, user_id, username, book_id, book_title, loan_date, due_date):
        return self._record(
            TransactionKind.LOAN, user_id, username, book_id, book_title,
            f"Book loaned on {loan_date} with due date {due_date}",
        )

    def record_return(self, user_id, username, book_id, book_title, return_date):
        return self._record(
            TransactionKind.RETURN, user_id, username, book_id, book_title,
            f"Book returned on {return_date}",
        )

    def record_fine_payment(self, user_id, username, book_id, book_title, amount):
        return self._record(
            TransactionKind.FINE_PAYMENT, user_id, username, book_id, book_title,
            f"Fine payment of ${amount} for overdue book",
        )

    def record_subscription_payment(self, user_id, username, plan, amount):
        return self._record(
            TransactionKind.SUBSCRIPTION_PAYMENT, user_id, username, NO_BOOK_ID, NO_BOOK_TITLE,
            f"Subscription payment of ${amount} for plan {plan}",
        )

    def record_loan_modification(self, user_id, username, book_id, book_title, old_due_date, new_due_date):
        tx = self._record(
            TransactionKind.LOAN_MODIFICATION, user_id, username, book_id, book_title,
            f"Loan due date modified from {old_due_date} to {new_due_date}",
        )

        if len(self.ledger.pending_transactions()) >= AUTO_SEAL_THRESHOLD:
            logger.info("Sealing a new block with loan modification transaction...")
            self.ledger.seal_pending_block(self.reward_address)
        return tx

    def seal_pending(self, cancel_event=None, timeout_seconds=None):
        """Scheduled seal. Returns the sealed block, or None if nothing is pending."""
        if not self.ledger.pending_transactions():
            logger.info("No pending transactions to seal")
            return None

        block = self.ledger.seal_pending_block(
            self.reward_address,
            cancel_event=cancel_event,
            timeout_seconds=timeout_seconds,
        )
        logger.info("Ledger now has %d blocks", self.ledger.height)
        return block

    def verify(self):
        return self.ledger.is_valid()

    def status(self):
        return {
            "block_count": self.ledger.height,
            "pending_transactions": len(self.ledger.pending_transactions()),
            "is_valid": self.ledger.is_valid(),
            "difficulty": self.ledger.difficulty,
        }

    def user_transactions(self, user_id):
        return self.ledger.transactions_for_user(user_id)

    def book_transactions(self, book_id):
        return self.ledger.transactions_for_book(book_id)

    def transactions_by_kind(self, kind):
        return self.ledger.transactions_by_kind(kind)

    def pending_transactions(self):
        return self.ledger.pending_transactions()
