import unittest
import threading
from datetime import datetime, timezone
from nacl.signing import SigningKey
from nacl.encoding import HexEncoder

from libraryledger import Block, MiningExceededError, Transaction, TransactionKind, create_reward_transaction
from libraryledger.config import MAX_DIFFICULTY


class TestTransaction(unittest.TestCase):
    def setUp(self):
        self.tx = Transaction(TransactionKind.LOAN, 1, "alice", 10, "Dune", "Book loaned")

    def test_fields_fixed_at_creation(self):
        """Kind is stored as a plain string and the timestamp is UTC."""
        self.assertEqual(self.tx.kind, "LOAN")
        self.assertEqual(self.tx.timestamp.tzinfo, timezone.utc)
        self.assertIsNone(self.tx.signature)
        self.assertNotEqual(self.tx.transaction_id, Transaction("LOAN", 1, "alice", 10, "Dune", "x").transaction_id)

    def test_free_form_kind(self):
        tx = Transaction("SUBSCRIPTION_BILLED", 3, "carol", 0, "N/A", "Monthly plan")
        self.assertEqual(tx.kind, "SUBSCRIPTION_BILLED")

    def test_placeholder_signature(self):
        """Matching key verifies, anything else does not."""
        self.assertFalse(self.tx.verify("library_private_key"))

        self.tx.sign("library_private_key")
        self.assertTrue(self.tx.verify("library_private_key"))
        self.assertFalse(self.tx.verify("someone_else"))

        # Tamper with details
        self.tx.details = "Book stolen"
        self.assertFalse(self.tx.verify("library_private_key"))

    def test_ed25519_signature(self):
        sk = SigningKey.generate()
        pk = sk.verify_key.encode(encoder=HexEncoder).decode()
        other_pk = SigningKey.generate().verify_key.encode(encoder=HexEncoder).decode()

        self.assertFalse(self.tx.verify_ed25519(pk))

        self.tx.sign_ed25519(sk)
        self.assertTrue(self.tx.verify_ed25519(pk))
        self.assertFalse(self.tx.verify_ed25519(other_pk))

        self.tx.details = "Book stolen"
        self.assertFalse(self.tx.verify_ed25519(pk))

    def test_placeholder_signature_fails_ed25519_check(self):
        pk = SigningKey.generate().verify_key.encode(encoder=HexEncoder).decode()
        self.tx.sign("library_private_key")
        self.assertFalse(self.tx.verify_ed25519(pk))

    def test_reward_transaction(self):
        reward = create_reward_transaction("LIBRARY_TOKEN", "FRONT_DESK")
        self.assertTrue(reward.is_reward())
        self.assertEqual(reward.user_id, 0)
        self.assertEqual(reward.username, "SYSTEM")
        self.assertEqual(reward.book_id, 0)
        self.assertEqual(reward.book_title, "N/A")
        self.assertEqual(reward.details, "Mining reward of LIBRARY_TOKEN to FRONT_DESK")


class TestBlock(unittest.TestCase):
    def setUp(self):
        self.block = Block(index=1, previous_hash="ab" * 32)

    def test_hash_computed_on_creation(self):
        self.assertEqual(self.block.nonce, 0)
        self.assertEqual(self.block.transactions, [])
        self.assertEqual(self.block.hash, self.block.compute_hash())
        self.assertEqual(len(self.block.hash), 64)
        self.assertEqual(self.block.hash, self.block.hash.lower())

    def test_compute_hash_is_pure(self):
        self.assertEqual(self.block.compute_hash(), self.block.compute_hash())

        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        a = Block(index=3, previous_hash="0", timestamp=moment)
        b = Block(index=3, previous_hash="0", timestamp=moment)
        self.assertEqual(a.hash, b.hash)

    def test_nonce_changes_hash(self):
        before = self.block.compute_hash()
        self.block.nonce += 1
        self.assertNotEqual(self.block.compute_hash(), before)

    def test_add_transaction(self):
        before = self.block.hash
        tx = Transaction("LOAN", 1, "alice", 10, "Dune", "Book loaned")

        self.assertTrue(self.block.add_transaction(tx))
        self.assertEqual(self.block.transactions, [tx])
        self.assertNotEqual(self.block.hash, before)
        self.assertEqual(self.block.hash, self.block.compute_hash())

    def test_add_none_rejected(self):
        before = self.block.hash
        self.assertFalse(self.block.add_transaction(None))
        self.assertEqual(self.block.transactions, [])
        self.assertEqual(self.block.hash, before)

    def test_mine_meets_difficulty(self):
        for difficulty in range(0, 4):
            block = Block(index=difficulty + 1, previous_hash="0")
            block.add_transaction(Transaction("RETURN", 2, "bob", 11, "Emma", "Book returned"))
            block.mine(difficulty)
            self.assertTrue(block.hash.startswith("0" * difficulty))
            self.assertEqual(block.hash, block.compute_hash())

    def test_mine_zero_difficulty_keeps_nonce(self):
        before = self.block.hash
        self.block.mine(0)
        self.assertEqual(self.block.nonce, 0)
        self.assertEqual(self.block.hash, before)

    def test_transactions_frozen_once_mining_starts(self):
        self.block.mine(1)
        self.assertTrue(self.block.frozen)
        tx = Transaction("LOAN", 1, "alice", 10, "Dune", "Book loaned")
        self.assertFalse(self.block.add_transaction(tx))
        self.assertEqual(self.block.transactions, [])

    def test_copy_is_independent(self):
        self.block.add_transaction(Transaction("LOAN", 1, "alice", 10, "Dune", "Book loaned"))
        clone = self.block.copy()
        clone.transactions[0].details = "changed"
        self.assertEqual(self.block.transactions[0].details, "Book loaned")
        self.assertEqual(self.block.hash, self.block.compute_hash())

    def test_failed_mine_leaves_block_open(self):
        with self.assertRaises(ValueError):
            self.block.mine(-1)
        self.assertFalse(self.block.frozen)

        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(MiningExceededError):
            self.block.mine(MAX_DIFFICULTY, cancel_event=cancel)
        self.assertFalse(self.block.frozen)
        self.assertEqual(self.block.nonce, 0)

        tx = Transaction("LOAN", 1, "alice", 10, "Dune", "Book loaned")
        self.assertTrue(self.block.add_transaction(tx))
        self.assertEqual(self.block.hash, self.block.compute_hash())

    def test_mine_progress_callback_can_stop(self):
        seen = []

        def progress(nonce, block_hash):
            seen.append(nonce)
            return len(seen) < 3

        with self.assertRaises(MiningExceededError):
            self.block.mine(MAX_DIFFICULTY, progress_callback=progress)
        self.assertEqual(seen, [0, 1, 2])
        self.assertFalse(self.block.frozen)


if __name__ == '__main__':
    unittest.main()
