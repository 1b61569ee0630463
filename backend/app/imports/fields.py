"""Declarative field validation for CSV rows.

An entity's rules are a tuple of ``FieldRule`` entries. ``validate_record``
walks them in order and never raises for bad data: every missing required
value, failed coercion or failed constraint becomes exactly one
``ImportRowError`` for that field, and processing moves on.
"""
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from app.schemas.imports import ImportRowError

MULTI_VALUE_DELIMITER = ","

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TIME_RE = re.compile(r"^(\d{1,2})[:hH](\d{2})$")

_TRUE_VALUES = {"true", "1", "oui", "yes", "vrai", "o", "y"}
_FALSE_VALUES = {"false", "0", "non", "no", "faux", "n"}


class CoercionError(ValueError):
    """Raised by a coercer; the message is shown to the user as-is."""


Coercer = Callable[[str], Any]
Constraint = Callable[[Any], str | None]


# ─── Coercers ───

def as_text(raw: str) -> str:
    return raw


def as_email(raw: str) -> str:
    if not _EMAIL_RE.match(raw):
        raise CoercionError("Email invalide")
    return raw


def as_date(raw: str) -> date:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            pass
    raise CoercionError("Date invalide (AAAA-MM-JJ ou JJ/MM/AAAA)")


def as_time(raw: str) -> str:
    """Normalise ``9:00`` / ``09h00`` to ``09:00``."""
    match = _TIME_RE.match(raw)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours < 24 and minutes < 60:
            return f"{hours:02d}:{minutes:02d}"
    raise CoercionError("Heure invalide (HH:MM)")


def as_boolean(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise CoercionError("Valeur booléenne invalide (true ou false)")


def as_list(raw: str) -> list[str]:
    """Split on the multi-value delimiter, trim, drop blanks, dedupe (case-insensitive)."""
    seen: set[str] = set()
    values: list[str] = []
    for part in raw.split(MULTI_VALUE_DELIMITER):
        item = part.strip()
        if item and item.lower() not in seen:
            seen.add(item.lower())
            values.append(item)
    return values


def enum_of(choices: Iterable[str]) -> Coercer:
    allowed = tuple(choices)

    def coerce(raw: str) -> str:
        value = raw.upper()
        if value not in allowed:
            raise CoercionError(f"Valeur invalide ({', '.join(allowed)})")
        return value

    return coerce


def as_integer(min_value: int | None = None, max_value: int | None = None) -> Coercer:
    def coerce(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError:
            raise CoercionError("Nombre entier attendu") from None
        if min_value is not None and value < min_value:
            raise CoercionError(f"Doit être supérieur ou égal à {min_value}")
        if max_value is not None and value > max_value:
            raise CoercionError(f"Doit être inférieur ou égal à {max_value}")
        return value

    return coerce


# ─── Constraints ───

def max_length(limit: int) -> Constraint:
    def check(value: str) -> str | None:
        if len(value) > limit:
            return f"{limit} caractères maximum"
        return None

    return check


# ─── Rules ───

@dataclass(frozen=True)
class FieldRule:
    """One canonical column: how to read it and what makes it valid."""

    name: str
    label: str
    required: bool = False
    coerce: Coercer = as_text
    validate: Constraint | None = None
    default: Any = None
    required_message: str | None = None

    def missing_message(self) -> str:
        return self.required_message or f"Champ obligatoire: {self.label}"


@dataclass(frozen=True)
class RowCheck:
    """A constraint spanning several fields.

    Only evaluated when every field in ``fields`` coerced without error, so a
    bad date never triggers a second, derived error on the same row.
    """

    fields: tuple[str, ...]
    column: str
    message: str
    predicate: Callable[[dict[str, Any]], bool]


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def validate_record(
    rules: Iterable[FieldRule],
    record: dict[str, str],
    row: int,
) -> tuple[dict[str, Any], list[ImportRowError]]:
    """Coerce one parsed record against ``rules``.

    Returns the coerced values (only for fields that passed) and the errors.
    """
    values: dict[str, Any] = {}
    errors: list[ImportRowError] = []

    for rule in rules:
        raw = (record.get(rule.name) or "").strip()
        if not raw:
            if rule.required:
                errors.append(ImportRowError(row=row, field=rule.name, message=rule.missing_message()))
            else:
                values[rule.name] = rule.default
            continue

        try:
            value = rule.coerce(raw)
        except CoercionError as exc:
            errors.append(ImportRowError(row=row, field=rule.name, message=str(exc), value=raw))
            continue

        # e.g. a list column holding only delimiters
        if _is_empty(value):
            if rule.required:
                errors.append(
                    ImportRowError(row=row, field=rule.name, message=rule.missing_message(), value=raw)
                )
            else:
                values[rule.name] = rule.default
            continue

        if rule.validate is not None:
            message = rule.validate(value)
            if message:
                errors.append(ImportRowError(row=row, field=rule.name, message=message, value=raw))
                continue

        values[rule.name] = value

    return values, errors


def run_row_checks(
    checks: Iterable[RowCheck],
    values: dict[str, Any],
    record: dict[str, str],
    row: int,
) -> list[ImportRowError]:
    errors: list[ImportRowError] = []
    for check in checks:
        if not all(name in values for name in check.fields):
            continue
        if not check.predicate(values):
            errors.append(
                ImportRowError(
                    row=row,
                    field=check.column,
                    message=check.message,
                    value=record.get(check.column) or None,
                )
            )
    return errors
