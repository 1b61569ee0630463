"""CSV bulk import/export for clients, contrats, interventions and employés."""
from app.imports.engine import CommitSummary, ImportEngine
from app.imports.errors import ImportEngineError, ParseError, PersistenceError, UnknownImportType
from app.imports.exporter import export_entities, export_rows
from app.imports.rules import get_spec, template

__all__ = [
    "CommitSummary",
    "ImportEngine",
    "ImportEngineError",
    "ParseError",
    "PersistenceError",
    "UnknownImportType",
    "export_entities",
    "export_rows",
    "get_spec",
    "template",
]
