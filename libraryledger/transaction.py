import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from nacl.signing import SigningKey, VerifyKey
from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError, CryptoError

from libraryledger.config import (
    NO_BOOK_ID,
    NO_BOOK_TITLE,
    SYSTEM_USER_ID,
    SYSTEM_USERNAME,
)


class TransactionKind(str, Enum):
    LOAN = "LOAN"
    RETURN = "RETURN"
    FINE_PAYMENT = "FINE_PAYMENT"
    LOAN_MODIFICATION = "LOAN_MODIFICATION"
    SUBSCRIPTION_PAYMENT = "SUBSCRIPTION_PAYMENT"
    MINING_REWARD = "MINING_REWARD"


def kind_value(kind: Union[TransactionKind, str]) -> str:
    """Normalize an enum member or free-form string to the stored kind."""
    if isinstance(kind, TransactionKind):
        return kind.value
    return str(kind)


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="microseconds")


class Transaction:
    def __init__(self, kind, user_id, username, book_id, book_title, details, timestamp=None):
        self.transaction_id = str(uuid.uuid4())
        self.kind = kind_value(kind)
        self.user_id = user_id
        self.username = username
        self.book_id = book_id
        self.book_title = book_title
        # Fixed at construction, always UTC
        self.timestamp: datetime = timestamp if timestamp is not None else datetime.now(timezone.utc)
        self.details = details
        self.signature: Optional[str] = None

    def to_dict(self):
        return {
            "transaction_id": self.transaction_id,
            "kind": self.kind,
            "user_id": self.user_id,
            "username": self.username,
            "book_id": self.book_id,
            "book_title": self.book_title,
            "timestamp": format_timestamp(self.timestamp),
            "details": self.details,
            "signature": self.signature,
        }

    def signing_payload(self) -> str:
        """String combination of the hashable fields used by sign()/verify()."""
        return "{}{}{}{}{}".format(
            self.user_id,
            self.book_id,
            format_timestamp(self.timestamp),
            self.kind,
            self.details,
        )

    def sign(self, private_key: str):
        # Placeholder scheme: equality marker, not a cryptographic signature
        self.signature = self.signing_payload() + str(private_key)

    def verify(self, public_key: str) -> bool:
        if self.signature is None:
            return False
        return self.signature == self.signing_payload() + str(public_key)

    @property
    def hash_payload(self):
        """Returns the bytes signed by the Ed25519 path."""
        payload = {
            "user_id": self.user_id,
            "book_id": self.book_id,
            "timestamp": format_timestamp(self.timestamp),
            "kind": self.kind,
            "details": self.details,
        }
        return json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")

    def sign_ed25519(self, signing_key: SigningKey):
        signed = signing_key.sign(self.hash_payload)
        self.signature = signed.signature.hex()

    def verify_ed25519(self, verify_key_hex: str) -> bool:
        if not self.signature:
            return False

        try:
            verify_key = VerifyKey(verify_key_hex, encoder=HexEncoder)
            verify_key.verify(self.hash_payload, bytes.fromhex(self.signature))
            return True

        except (BadSignatureError, CryptoError, ValueError, TypeError):
            # Placeholder signatures are not hex and land here too
            return False

    def is_reward(self) -> bool:
        return self.kind == TransactionKind.MINING_REWARD.value

    def __eq__(self, other):
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(self.transaction_id)

    def __repr__(self):
        return f"Tx({self.kind}, user={self.user_id}, book={self.book_id}, id={self.transaction_id[:8]})"


def create_reward_transaction(reward: str, reward_address: str) -> Transaction:
    """Create the reward transaction seeded into the pool after a seal."""
    return Transaction(
        kind=TransactionKind.MINING_REWARD,
        user_id=SYSTEM_USER_ID,
        username=SYSTEM_USERNAME,
        book_id=NO_BOOK_ID,
        book_title=NO_BOOK_TITLE,
        details=f"Mining reward of {reward} to {reward_address}",
    )
