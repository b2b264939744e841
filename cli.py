#!/usr/bin/env python3
"""
Library Ledger CLI

Interactive console over an in-process library transaction ledger.

Usage:
    # Start with default difficulty, sealing every 5 minutes
    python cli.py

    # Faster sealing and a custom reward address
    python cli.py --seal-interval 30 --reward-address FRONT_DESK

    # Higher difficulty with a per-seal timeout
    python cli.py --difficulty 4 --seal-timeout 60
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
import threading
import time
from datetime import date, timedelta

from libraryledger import Ledger, LedgerService, MiningExceededError
from libraryledger.config import DIFFICULTY, MAX_DIFFICULTY, MINING_REWARD, MINING_REWARD_ADDRESS, SEAL_INTERVAL

logger = logging.getLogger(__name__)

LOAN_PERIOD_DAYS = 14


class LedgerConsole:
    """Library ledger console with scheduled sealing."""

    def __init__(self, service: LedgerService, seal_interval: float = SEAL_INTERVAL, seal_timeout: float = None):
        self.service = service
        self.seal_interval = seal_interval
        self.seal_timeout = seal_timeout

        self._running = False
        self._cancel_event = threading.Event()
        self._seal_future = None
        self._seal_requested = False

    @property
    def ledger(self):
        return self.service.ledger

    async def start(self):
        """Start the console loop."""
        self._running = True
        logger.info("Ledger ready. Difficulty: %d", self.ledger.difficulty)
        await self._run()

    async def stop(self):
        """Stop the console, cancelling any seal in progress."""
        logger.info("Stopping ledger console...")
        self._running = False
        self._cancel_event.set()
        if self._seal_future is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._seal_future), timeout=5.0)
            except MiningExceededError:
                pass
            except asyncio.TimeoutError:
                logger.warning("Seal did not stop in time")
        logger.info("Ledger console stopped")

    async def _run(self):
        """Main console loop."""
        logger.info("Type 'help' for commands.")

        last_seal_time = time.time()
        loop = asyncio.get_running_loop()

        # Start input reader task
        input_task = asyncio.create_task(self._read_input())

        while self._running:
            try:
                if input_task.done():
                    cmd = input_task.result()
                    if cmd is None or cmd == "":
                        # EOF on stdin
                        break
                    if self._handle_command(cmd) is False:
                        break
                    input_task = asyncio.create_task(self._read_input())

                # Scheduled sealing
                now = time.time()
                if self._seal_future is None and (
                    self._seal_requested or now - last_seal_time >= self.seal_interval
                ):
                    self._seal_requested = False
                    self._cancel_event.clear()
                    self._seal_future = loop.run_in_executor(
                        None, self.service.seal_pending, self._cancel_event, self.seal_timeout
                    )
                    last_seal_time = now

                if self._seal_future is not None and self._seal_future.done():
                    self._finish_seal()

                # Keep event loop responsive
                await asyncio.sleep(0.1)

            except asyncio.CancelledError:
                break

        # Cancel input task on exit
        if not input_task.done():
            input_task.cancel()

    def _finish_seal(self):
        future, self._seal_future = self._seal_future, None
        try:
            block = future.result()
        except MiningExceededError as e:
            logger.warning("Seal aborted: %s. Pending transactions kept.", e)
            return
        except Exception:
            # Ledger state is unchanged when a seal fails
            logger.exception("Seal failed")
            return
        if block is not None:
            print(f"Sealed block #{block.index}: {block.hash}")

    async def _read_input(self):
        """Read a line from stdin asynchronously."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, sys.stdin.readline)

    def _print_help(self):
        """Print available commands."""
        print("""
Available commands:
  status                                      - Show ledger status
  chain                                       - Show chain summary
  block <index>                               - Show block details
  pending                                     - Show pending transactions
  loan <user_id> <username> <book_id> <title> - Record a loan
  return <user_id> <username> <book_id> <title>
                                              - Record a return
  fine <user_id> <username> <book_id> <amount> <title>
                                              - Record a fine payment
  user <user_id>                              - Sealed transactions for a user
  book <book_id>                              - Sealed transactions for a book
  kind <kind>                                 - Sealed transactions of a kind
  seal                                        - Seal pending transactions now
  cancel                                      - Abort the seal in progress
  verify                                      - Verify chain integrity
  difficulty <n>                              - Change mining difficulty
  export                                      - Print the chain as JSON
  help                                        - Show this help
  exit / quit                                 - Stop the console
""")

    def _print_transactions(self, txs):
        if not txs:
            print("No transactions found")
            return
        for tx in txs:
            print(f"  [{tx.kind}] user={tx.user_id} ({tx.username}) book={tx.book_id} ({tx.book_title}): {tx.details}")

    def _parse_party(self, args, extra=0):
        """Parse '<user_id> <username> <book_id> [extra...] <title...>'."""
        if len(args) < 4 + extra:
            return None
        user_id = int(args[0])
        book_id = int(args[2])
        return user_id, args[1], book_id, args[3:3 + extra], " ".join(args[3 + extra:])

    def _handle_command(self, cmd: str):
        """Handle interactive command."""
        parts = cmd.strip().split()
        if not parts:
            return True  # Continue running

        command = parts[0].lower()
        args = parts[1:]

        try:
            return self._dispatch(command, args)
        except ValueError as e:
            print(f"Invalid argument: {e}")
            return True

    def _dispatch(self, command, args):
        if command in ("exit", "quit"):
            return False  # Stop running

        elif command == "help":
            self._print_help()

        elif command == "status":
            status = self.service.status()
            print(f"Blocks: {status['block_count']}")
            print(f"Pending: {status['pending_transactions']} txns")
            print(f"Valid: {'Yes' if status['is_valid'] else 'No'}")
            print(f"Difficulty: {status['difficulty']}")
            print(f"Sealing: {'IN PROGRESS' if self._seal_future is not None else 'idle'}")

        elif command == "chain":
            last = self.ledger.last_block
            print(f"Chain height: {self.ledger.height}")
            print(f"Last block: #{last.index}")
            print(f"  Hash: {last.hash[:32]}...")
            print(f"  Txns: {len(last.transactions)}")

        elif command == "block":
            if not args:
                print("Usage: block <index>")
            else:
                idx = int(args[0])
                if 0 <= idx < self.ledger.height:
                    block = self.ledger.block_at(idx)
                    print(f"Block #{block.index}")
                    print(f"  Hash: {block.hash}")
                    print(f"  Prev: {block.previous_hash[:32]}")
                    print(f"  Time: {block.timestamp.isoformat()}")
                    print(f"  Nonce: {block.nonce}")
                    print(f"  Txns: {len(block.transactions)}")
                    self._print_transactions(block.transactions)
                else:
                    print(f"Block {idx} not found (height: {self.ledger.height})")

        elif command == "pending":
            pending = self.ledger.pending_transactions()
            print(f"Pending transactions ({len(pending)}):")
            self._print_transactions(pending[:10])  # Show first 10
            if len(pending) > 10:
                print(f"  ... and {len(pending) - 10} more")

        elif command == "loan":
            parsed = self._parse_party(args)
            if parsed is None:
                print("Usage: loan <user_id> <username> <book_id> <title>")
            else:
                user_id, username, book_id, _, title = parsed
                today = date.today()
                self.service.record_loan(
                    user_id, username, book_id, title, today, today + timedelta(days=LOAN_PERIOD_DAYS)
                )
                print("Loan recorded")

        elif command == "return":
            parsed = self._parse_party(args)
            if parsed is None:
                print("Usage: return <user_id> <username> <book_id> <title>")
            else:
                user_id, username, book_id, _, title = parsed
                self.service.record_return(user_id, username, book_id, title, date.today())
                print("Return recorded")

        elif command == "fine":
            parsed = self._parse_party(args, extra=1)
            if parsed is None:
                print("Usage: fine <user_id> <username> <book_id> <amount> <title>")
            else:
                user_id, username, book_id, (amount,), title = parsed
                self.service.record_fine_payment(user_id, username, book_id, title, float(amount))
                print("Fine payment recorded")

        elif command == "user":
            if not args:
                print("Usage: user <user_id>")
            else:
                self._print_transactions(self.service.user_transactions(int(args[0])))

        elif command == "book":
            if not args:
                print("Usage: book <book_id>")
            else:
                self._print_transactions(self.service.book_transactions(int(args[0])))

        elif command == "kind":
            if not args:
                print("Usage: kind <kind>")
            else:
                self._print_transactions(self.service.transactions_by_kind(args[0].upper()))

        elif command == "seal":
            if self._seal_future is not None:
                print("A seal is already in progress")
            else:
                print("Sealing pending transactions...")
                self._seal_requested = True

        elif command == "cancel":
            if self._seal_future is None:
                print("No seal in progress")
            else:
                self._cancel_event.set()
                print("Cancelling seal...")

        elif command == "verify":
            print(f"Chain valid: {'Yes' if self.service.verify() else 'No'}")

        elif command == "difficulty":
            if not args:
                print(f"Difficulty: {self.ledger.difficulty}")
            else:
                self.ledger.difficulty = int(args[0])
                print(f"Difficulty: {self.ledger.difficulty}")

        elif command == "export":
            print(json.dumps(self.ledger.to_dict_list(), indent=2, ensure_ascii=False))

        else:
            print(f"Unknown command: {command}. Type 'help' for commands.")

        return True  # Continue running


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Library Transaction Ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py                                   # Default settings
  python cli.py --seal-interval 30                # Seal every 30 seconds
  python cli.py --difficulty 4 --seal-timeout 60  # Harder blocks, bounded seals
        """
    )

    parser.add_argument(
        "--difficulty", "-d",
        type=int,
        default=DIFFICULTY,
        help=f"Leading hex zeros required in block hashes, 0-{MAX_DIFFICULTY} (default: {DIFFICULTY})"
    )

    parser.add_argument(
        "--reward",
        type=str,
        default=MINING_REWARD,
        help=f"Reward description credited on each seal (default: {MINING_REWARD})"
    )

    parser.add_argument(
        "--reward-address",
        type=str,
        default=MINING_REWARD_ADDRESS,
        help=f"Address receiving sealing rewards (default: {MINING_REWARD_ADDRESS})"
    )

    parser.add_argument(
        "--seal-interval",
        type=float,
        default=SEAL_INTERVAL,
        help=f"Seconds between scheduled seals (default: {SEAL_INTERVAL})"
    )

    parser.add_argument(
        "--seal-timeout",
        type=float,
        default=None,
        help="Abort a seal after this many seconds (default: no limit)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    if not 0 <= args.difficulty <= MAX_DIFFICULTY:
        parser.error(f"--difficulty must be between 0 and {MAX_DIFFICULTY}")
    return args


async def run_console(args):
    """Run the console with given arguments."""
    ledger = Ledger(difficulty=args.difficulty, mining_reward=args.reward)
    service = LedgerService(ledger, reward_address=args.reward_address)
    console = LedgerConsole(service, seal_interval=args.seal_interval, seal_timeout=args.seal_timeout)

    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()

    def shutdown_handler():
        logger.info("Shutdown signal received")
        stop_requested.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    console_task = asyncio.create_task(console.start())
    stop_task = asyncio.create_task(stop_requested.wait())
    try:
        await asyncio.wait({console_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_task.cancel()
        await console.stop()
        if not console_task.done():
            console_task.cancel()


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging
    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )

    print(f"""
╔══════════════════════════════════════════════╗
║        Library Transaction Ledger            ║
╚══════════════════════════════════════════════╝
  Difficulty: {args.difficulty}
  Seal interval: {args.seal_interval}s
  Reward address: {args.reward_address}

  Type 'help' for available commands.
""")

    asyncio.run(run_console(args))


if __name__ == "__main__":
    main()
