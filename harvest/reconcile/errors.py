"""
Exceptions raised by the reconciliation engine.

Row-level problems (unmatched products, unmatched invoices) are never
raised; they are collected on the result objects instead.
"""


class ReconcileError(Exception):
    """Base class for all engine errors."""


class SheetParseError(ReconcileError):
    """An uploaded spreadsheet could not be read."""


class DuplicateNameError(ReconcileError, ValueError):
    """A catalog edit would collide with an existing company or product name."""


class CatalogImportError(ReconcileError):
    """A JSON catalog backup was not a usable object."""


class InvoiceMergeError(ReconcileError):
    """The order file is missing a column the merge cannot run without."""


class SettlementError(ReconcileError):
    """Nothing to settle for the requested selection."""


class ProcessingInProgress(ReconcileError):
    """A workstation run was triggered while another was still resolving."""
