"""CSV export endpoints; output re-imports through /import unchanged."""
import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.v1.import_routes import get_import_store
from app.core.deps import require_role
from app.imports import UnknownImportType, export_entities
from app.imports.parser import BOM
from app.imports.store import ImportStore
from app.models.user import EXPORT_ROLES

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{export_type}", summary="Export clients, contrats, interventions or employés as CSV")
async def export_csv(
    export_type: str,
    store: Annotated[ImportStore, Depends(get_import_store)],
    current_user: Annotated[object, Depends(require_role(*EXPORT_ROLES))],
    date_debut: date | None = Query(default=None, description="interventions only: first planned date"),
    date_fin: date | None = Query(default=None, description="interventions only: last planned date"),
):
    try:
        csv_text = await export_entities(store, export_type, date_from=date_debut, date_to=date_fin)
    except UnknownImportType as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)

    logger.info("Exported %s (%d bytes)", export_type, len(csv_text))
    # BOM so spreadsheet tools pick UTF-8
    return Response(
        content=BOM + csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={export_type}.csv"},
    )
