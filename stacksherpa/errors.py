"""Exception types raised by stacksherpa."""

from __future__ import annotations


class StacksherpaError(Exception):
    """Base class for stacksherpa errors."""


class LedgerError(StacksherpaError):
    """A project's decision ledger could not be read or written."""


class CatalogError(StacksherpaError):
    """The provider catalog could not be read or the input was invalid."""
