"""Exceptions raised by the inbox bridge."""


class InboxBridgeError(Exception):
    """Base class for every error raised by this package."""


class RPCFailure(InboxBridgeError):
    """A call to the chain client (logs, headers, broadcast) failed."""


class DecodeFailure(InboxBridgeError):
    """A log or a transaction's calldata could not be decoded."""


class MissingTransactionError(InboxBridgeError, LookupError):
    """An origin delivery has no entry in the supplied transaction index."""

    def __init__(self, message_num: int) -> None:
        super().__init__(f"didn't have tx data for message {message_num}")
        self.message_num = message_num


class UnexpectedLogKind(InboxBridgeError):
    """A log's topic-0 matches neither known delivery event."""


class SigningFailure(InboxBridgeError):
    """The signing authority could not produce a signed transaction."""


class EncodingFailure(InboxBridgeError):
    """Outgoing calldata could not be ABI encoded."""
