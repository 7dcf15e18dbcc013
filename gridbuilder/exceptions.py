"""Exceptions for gridbuilder."""


class GridBuilderException(Exception):
    """Base exception for all gridbuilder errors."""

    pass


class InputValidationError(GridBuilderException):
    """Raised when input files or control parameters are missing or malformed.

    Raised before any placement logic runs; nothing is written.
    """

    pass


class LedgerError(InputValidationError):
    """Raised when a connections ledger row cannot be read."""

    pass


class SeatingError(GridBuilderException):
    """Raised when a house is asked to break its capacity or roster limits."""

    pass
