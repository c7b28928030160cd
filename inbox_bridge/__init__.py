"""Client-side adapter for the Inbox and SequencerInbox contracts."""

from .abi import ContractDescriptors
from .errors import (
    DecodeFailure,
    EncodingFailure,
    InboxBridgeError,
    MissingTransactionError,
    RPCFailure,
    SigningFailure,
    UnexpectedLogKind,
)
from .events import InlineDelivery, OriginDelivery, message_key, message_topic
from .inbox import BlockRange, StandardInbox, StandardInboxWatcher
from .sequencer_inbox import (
    GasPricing,
    SequencerBatch,
    TrackedNonce,
    add_sequencer_batch,
    add_sequencer_batch_custom_nonce,
    compute_data_gas,
    price_batch_submission,
)
from .transact_auth import SubmittedTransaction, TransactAuth

__all__ = [
    "BlockRange",
    "ContractDescriptors",
    "DecodeFailure",
    "EncodingFailure",
    "GasPricing",
    "InboxBridgeError",
    "InlineDelivery",
    "MissingTransactionError",
    "OriginDelivery",
    "RPCFailure",
    "SequencerBatch",
    "SigningFailure",
    "StandardInbox",
    "StandardInboxWatcher",
    "SubmittedTransaction",
    "TrackedNonce",
    "TransactAuth",
    "UnexpectedLogKind",
    "add_sequencer_batch",
    "add_sequencer_batch_custom_nonce",
    "compute_data_gas",
    "message_key",
    "message_topic",
    "price_batch_submission",
]
