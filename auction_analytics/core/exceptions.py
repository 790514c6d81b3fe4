"""Errors raised by the bid history engine."""


class BidHistoryError(Exception):
    """Base class for bid history errors"""


class BidStoreUnavailableError(BidHistoryError):
    """
    The bid store could not be read.

    Callers cannot proceed without bid data, so this always propagates;
    the request may be retried.
    """

    retryable = True


class InvalidCursorError(BidHistoryError):
    """A pagination cursor could not be decoded or no longer points at a bid."""
