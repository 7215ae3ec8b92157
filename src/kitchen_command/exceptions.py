"""Exception hierarchy shared by the client, the state manager and reports."""
from __future__ import annotations


class KitchenCommandError(Exception):
    """Base class for all package errors."""


class RecordStoreUnavailable(KitchenCommandError):
    """The record store could not be reached at the transport level."""


class ReportGenerationError(KitchenCommandError):
    """The text-generation backend failed or produced no usable output."""


__all__ = ["KitchenCommandError", "RecordStoreUnavailable", "ReportGenerationError"]
