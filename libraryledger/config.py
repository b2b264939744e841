"""
config.py - Library ledger configuration constants.
Simple settings for the transaction ledger.
"""

# Proof-of-Work difficulty (number of leading hex zeros required)
DIFFICULTY = 2

# Highest difficulty the ledger accepts (16^8 expected hashes per seal)
MAX_DIFFICULTY = 8

# Reward credited to the sealing party on every seal
MINING_REWARD = "LIBRARY_TOKEN"
MINING_REWARD_ADDRESS = "LIBRARY_SYSTEM"

# Genesis block linkage sentinel
GENESIS_PREVIOUS_HASH = "0"

# Block hashing
HASH_ALGORITHM = "sha256"
HASH_ENCODING_VERSION = 1

# System identity used for reward transactions
SYSTEM_USER_ID = 0
SYSTEM_USERNAME = "SYSTEM"
NO_BOOK_ID = 0
NO_BOOK_TITLE = "N/A"

# Key material used by the library service for placeholder signatures
LIBRARY_SIGNING_KEY = "library_private_key"

# Seal as soon as this many transactions are pending after a loan modification
AUTO_SEAL_THRESHOLD = 3

# Seconds between scheduled seals (5 minutes)
SEAL_INTERVAL = 300
