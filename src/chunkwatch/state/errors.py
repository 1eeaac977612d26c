"""Processed-file store errors."""


class StateError(Exception):
    """Raised when persisted processed-file data cannot be read or written."""
