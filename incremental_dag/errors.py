"""Errors raised while resolving a graph of nodes."""

from __future__ import annotations


class ResolveError(Exception):
    """Any error that can occur when resolving a node."""


class AnyBorrowError(ResolveError):
    """A node's state could not be borrowed.

    This means either the graph has a cycle, or a reference to a previous
    result is still being held while the node is written to.
    """

    default_message = "borrow error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class BorrowError(AnyBorrowError):
    """Tried to read a node's state while it was being written."""

    default_message = "borrow error"


class BorrowMutError(AnyBorrowError):
    """Tried to write a node's state while it was being read or written."""

    default_message = "borrow mut error"


class EarlyExit(ResolveError):
    """Abort the resolution of a graph immediately with a message."""

    def __init__(self, message: str) -> None:
        self.message = str(message)
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message