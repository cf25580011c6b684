import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from analog.core.errors import ImportFormatError, StoreTransactionError
from analog.db.session import get_db
from analog.schemas.backup import ImportSummary
from analog.services import backup as backup_service

router = APIRouter()
logger = structlog.get_logger()


@router.get("/backup/export")
async def export_backup(db: AsyncSession = Depends(get_db)):
    """
    Download of every filter and procedure as one JSON file.
    """
    document = await backup_service.build_document(db)
    filename = backup_service.export_filename()
    return Response(
        content=backup_service.encode_document(document),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/backup/import", response_model=ImportSummary)
async def import_backup(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Accepts a previously exported document as the raw request body.
    Either everything is imported or nothing is.
    """
    payload = await request.body()
    logger.info("import_requested", size=len(payload))
    try:
        return await backup_service.import_document(db, payload)
    except ImportFormatError:
        # One generic message; the reason is in the logs
        raise HTTPException(status_code=400, detail="Invalid import format")
    except StoreTransactionError as e:
        raise HTTPException(status_code=409, detail=str(e))
