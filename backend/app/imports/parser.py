"""Tabular parser: raw CSV text → ordered list of ``{column: value}`` records."""
import csv
import io

from app.imports.errors import ParseError

BOM = "\ufeff"


def _is_blank(record: list[str]) -> bool:
    return not any(cell.strip() for cell in record)


def _normalise_header(record: list[str]) -> list[str]:
    header = [cell.strip().lower() for cell in record]
    seen: set[str] = set()
    for position, name in enumerate(header, start=1):
        if not name:
            raise ParseError(f"En-tête invalide: la colonne {position} n'a pas de nom")
        if name in seen:
            raise ParseError(f"En-tête invalide: colonne '{name}' en double")
        seen.add(name)
    return header


def decode(content: str | bytes) -> str:
    """Return the text of ``content`` with any leading byte-order marker removed."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("Le fichier doit être encodé en UTF-8") from exc
    if content.startswith(BOM):
        content = content[len(BOM):]
    return content


def parse(
    content: str | bytes,
    max_rows: int | None = None,
    max_bytes: int | None = None,
) -> list[dict[str, str]]:
    """Parse CSV content into records keyed by lower-cased header names.

    Blank lines are skipped and do not count as rows. The whole parse is
    aborted with a ParseError on the first structural problem, so callers
    never see a partially parsed file. The error is file-level (row 0); the
    offending record is named in its message.
    """
    if max_bytes is not None:
        size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
        if size > max_bytes:
            raise ParseError(f"Fichier trop volumineux (maximum {max_bytes} octets)")

    text = decode(content)
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)

    header: list[str] | None = None
    records: list[dict[str, str]] = []
    row_num = 0
    try:
        for record in reader:
            if _is_blank(record):
                continue
            if header is None:
                header = _normalise_header(record)
                continue
            row_num += 1
            if len(record) != len(header):
                raise ParseError(
                    f"Ligne {row_num}: nombre de colonnes incorrect, "
                    f"{len(record)} au lieu de {len(header)}"
                )
            if max_rows is not None and row_num > max_rows:
                raise ParseError(f"Trop de lignes (maximum {max_rows})")
            records.append({name: cell.strip() for name, cell in zip(header, record)})
    except csv.Error as exc:
        where = f"ligne {row_num + 1}" if header else "en-tête"
        raise ParseError(f"CSV mal formé ({where}): {exc}") from exc

    if header is None:
        raise ParseError("Fichier vide: ligne d'en-tête manquante")
    return records
