"""Gas and fee constants shared by the inbox bridge submitters."""

from web3 import Web3

# Fusaka upgrade enforces a hard 16,777,216 gas limit per transaction (2^24).
MAX_TRANSACTION_GAS = 16_777_216

# These values don't include the data gas.
ADD_SEQUENCER_BATCH_GAS_LIMIT = 2_000_000
SMALLER_ADD_SEQUENCER_BATCH_GAS_LIMIT = 1_000_000

BATCH_PRIORITY_FEE_PER_GAS = Web3.to_wei(1.5, "gwei")
MAX_GAS_CHARGE_WEI = Web3.to_wei(1.75, "ether")

CALLDATA_ZERO_BYTE_COST = 4
CALLDATA_NONZERO_BYTE_COST = 16

ZERO_ADDRESS = "0x" + "0" * 40
