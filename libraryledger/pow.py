import json
import time
import hashlib

from libraryledger.config import HASH_ALGORITHM


class MiningExceededError(Exception):
    """Raised when max_nonce, timeout, or cancellation is exceeded during mining."""


class DigestUnavailableError(RuntimeError):
    """Raised when the configured digest algorithm cannot be constructed."""


def canonical_bytes(data):
    """Stable UTF-8 JSON encoding used as hash input."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def calculate_hash(data, algorithm=HASH_ALGORITHM):
    """Calculates the lowercase hex digest of a block's canonical encoding."""
    try:
        digest = hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        raise DigestUnavailableError(f"Digest algorithm {algorithm!r} unavailable") from e
    digest.update(canonical_bytes(data))
    return digest.hexdigest()


def meets_difficulty(block_hash, difficulty):
    return block_hash[:difficulty] == "0" * difficulty


def mine_block(
    block,
    difficulty,
    max_nonce=None,
    timeout_seconds=None,
    cancel_event=None,
    logger=None,
    progress_callback=None
):
    """Mines a block using Proof-of-Work without mutating input block until success."""

    if not isinstance(difficulty, int) or isinstance(difficulty, bool) or difficulty < 0:
        raise ValueError("Difficulty must be a non-negative integer.")

    local_nonce = block.nonce
    hash_dict = block.to_hash_dict()  # Construct hash input once outside loop
    start_time = time.monotonic()

    if logger:
        logger.info(
            "Mining block %s (Difficulty: %s)",
            block.index,
            difficulty,
        )

    while True:

        if cancel_event is not None and cancel_event.is_set():
            if logger:
                logger.info("Mining cancelled via cancel_event.")
            raise MiningExceededError("Mining cancelled")

        # Enforce max_nonce limit before hashing
        if max_nonce is not None and local_nonce >= max_nonce:
            if logger:
                logger.warning("Max nonce exceeded during mining.")
            raise MiningExceededError("Mining failed: max_nonce exceeded")

        # Enforce timeout if specified
        if timeout_seconds is not None and (time.monotonic() - start_time) > timeout_seconds:
            if logger:
                logger.warning("Mining timeout exceeded.")
            raise MiningExceededError("Mining failed: timeout exceeded")

        hash_dict["nonce"] = local_nonce
        block_hash = calculate_hash(hash_dict)

        # Check difficulty target
        if meets_difficulty(block_hash, difficulty):
            block.nonce = local_nonce  # Assign only on success
            block.hash = block_hash
            if logger:
                logger.info("Success! Hash: %s", block_hash)
            return block

        if progress_callback:
            should_continue = progress_callback(local_nonce, block_hash)
            if should_continue is False:
                if logger:
                    logger.info("Mining cancelled via progress_callback.")
                raise MiningExceededError("Mining cancelled")

        local_nonce += 1
