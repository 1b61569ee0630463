"""CSV bulk import endpoints for clients, contrats, interventions and employés."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.deps import require_role
from app.core.limiter import limiter
from app.db.session import get_session
from app.imports import ImportEngine, ParseError, UnknownImportType, template
from app.imports.parser import BOM
from app.imports.store import ImportStore, SqlImportStore
from app.models.user import IMPORT_ROLES
from app.schemas.imports import ImportExecuteResponse, ImportRequest, ImportResult
from app.services import audit as audit_svc

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Dependencies ───

async def get_import_store(db: Annotated[AsyncSession, Depends(get_session)]) -> ImportStore:
    return SqlImportStore(db)


def _engine(store: ImportStore, audit_hook=None) -> ImportEngine:
    return ImportEngine(
        store,
        audit_hook=audit_hook,
        max_rows=settings.IMPORT_MAX_ROWS,
        max_bytes=settings.IMPORT_MAX_BYTES,
    )


def _require_body(body: ImportRequest) -> None:
    if not body.type or not body.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Type et contenu requis")


# ─── GET /import/templates/{type} ───

@router.get("/templates/{import_type}", summary="Download the CSV header template for an import type")
async def get_template(
    import_type: str,
    current_user: Annotated[object, Depends(require_role(*IMPORT_ROLES))],
):
    try:
        header = template(import_type)
    except UnknownImportType:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template non trouvé")
    return Response(
        content=BOM + header,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=template_{import_type}.csv"},
    )


# ─── POST /import/preview ───

@router.post("/preview", response_model=ImportResult, summary="Validate a CSV import without writing (DIRECTION, PLANNING)")
@limiter.limit(settings.IMPORT_RATE_LIMIT)
async def preview_import(
    request: Request,
    body: ImportRequest,
    store: Annotated[ImportStore, Depends(get_import_store)],
    current_user: Annotated[object, Depends(require_role(*IMPORT_ROLES))],
):
    _require_body(body)
    try:
        return await _engine(store).preview(body.type, body.content)
    except (UnknownImportType, ParseError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": exc.message, "row": exc.row},
        )


# ─── POST /import/execute ───

@router.post("/execute", response_model=ImportExecuteResponse, summary="Apply a CSV import atomically (DIRECTION, PLANNING)")
@limiter.limit(settings.IMPORT_RATE_LIMIT)
async def execute_import(
    request: Request,
    body: ImportRequest,
    db: Annotated[AsyncSession, Depends(get_session)],
    store: Annotated[ImportStore, Depends(get_import_store)],
    current_user: Annotated[object, Depends(require_role(*IMPORT_ROLES))],
):
    _require_body(body)
    engine = _engine(store, audit_hook=audit_svc.import_audit_hook(db, getattr(current_user, "email", None)))
    try:
        result = await engine.commit(body.type, body.content, actor_id=current_user.id)
    except (UnknownImportType, ParseError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": exc.message, "row": exc.row},
        )

    errors = [e.model_dump() for e in result.errors]
    if result.rolled_back:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Import annulé, aucune ligne enregistrée", "errors": errors},
        )
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Erreurs lors de l'import", "errors": errors},
        )

    return ImportExecuteResponse(
        message=f"Import réussi: {result.created} créé(s), {result.updated} mis à jour",
        created=result.created,
        updated=result.updated,
    )
