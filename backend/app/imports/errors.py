"""Exceptions raised by the import engine.

Field-level problems are never raised: they are collected as
``ImportRowError`` entries on the ``ImportResult``. Only structural input
problems and storage failures surface as exceptions.
"""

# Field name used for errors that concern the whole file rather than a column
GLOBAL_FIELD = "*"


class ImportEngineError(Exception):
    """Base class for import engine failures."""

    def __init__(self, message: str, row: int = 0):
        super().__init__(message)
        self.message = message
        self.row = row


class ParseError(ImportEngineError):
    """Malformed CSV structure: missing header, ragged row, bad quoting."""


class UnknownImportType(ImportEngineError):
    """Requested entity type has no import rule set."""


class PersistenceError(ImportEngineError):
    """The storage layer failed while applying a batch."""
