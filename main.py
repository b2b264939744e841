import logging
from datetime import date, timedelta

from nacl.signing import SigningKey
from nacl.encoding import HexEncoder

from libraryledger import Ledger, LedgerService, Transaction, TransactionKind


logger = logging.getLogger(__name__)


def create_librarian_key():
    sk = SigningKey.generate()
    pk = sk.verify_key.encode(encoder=HexEncoder).decode()
    return sk, pk


def run_demo(ledger=None):
    """Walk through a day at the library and return the service used."""
    service = LedgerService(ledger if ledger is not None else Ledger(difficulty=2))
    today = date.today()

    # -------------------------------
    # Loans and returns
    # -------------------------------

    logger.info("[1] Alice borrows 'Dune', Bob borrows 'Emma'")
    service.record_loan(1, "alice", 10, "Dune", today, today + timedelta(days=14))
    service.record_loan(2, "bob", 11, "Emma", today, today + timedelta(days=14))

    logger.info("[2] Scheduled seal")
    block = service.seal_pending()
    logger.info("Block #%s sealed with %d transaction(s)", block.index, len(block.transactions))

    logger.info("[3] Alice returns 'Dune' late and pays a fine")
    service.record_return(1, "alice", 10, "Dune", today + timedelta(days=20))
    service.record_fine_payment(1, "alice", 10, "Dune", 3.0)

    # -------------------------------
    # Loan modification (auto seal)
    # -------------------------------

    logger.info("[4] Bob's due date is extended")
    service.record_loan_modification(
        2, "bob", 11, "Emma", today + timedelta(days=14), today + timedelta(days=28)
    )

    # -------------------------------
    # Librarian-signed subscription with Ed25519
    # -------------------------------

    logger.info("[5] Librarian records a subscription with an Ed25519 signature")
    librarian_sk, librarian_pk = create_librarian_key()
    tx = Transaction(TransactionKind.SUBSCRIPTION_PAYMENT, 2, "bob", 0, "N/A", "Subscription payment of $9.99 for plan MONTHLY")
    tx.sign_ed25519(librarian_sk)
    logger.info("Signature valid: %s", tx.verify_ed25519(librarian_pk))
    service.ledger.add_transaction(tx)
    service.seal_pending()

    # -------------------------------
    # Final state
    # -------------------------------

    logger.info("[6] Final state check")
    status = service.status()
    logger.info("Blocks: %s, pending: %s, valid: %s",
                status["block_count"], status["pending_transactions"], status["is_valid"])
    for tx in service.user_transactions(1):
        logger.info("Alice: [%s] %s", tx.kind, tx.details)
    for tx in service.book_transactions(11):
        logger.info("Emma: [%s] %s", tx.kind, tx.details)

    return service


def main():
    logging.basicConfig(level=logging.INFO)
    run_demo()


if __name__ == "__main__":
    main()
