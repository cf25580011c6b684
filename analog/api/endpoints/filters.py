import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from analog.core.errors import (
    FilterNotFoundError,
    InvalidConditionValueError,
    StoreTransactionError,
    UnknownFieldError,
)
from analog.db.session import get_db
from analog.schemas.filter import (
    FieldEntry,
    FilterCreate,
    FilterCreated,
    FilterMatchCount,
    FilterOverview,
    FilterRead,
    FilterUpdate,
)
from analog.schemas.procedure import ProcedureRead
from analog.services import filters as filter_service
from analog.services.compiler import PredicateCompiler, get_compiler
from analog.services.formatter import ConditionFormatter, get_formatter
from analog.services.registry import FIELD_REGISTRY

router = APIRouter()
logger = structlog.get_logger()


def _not_found(e: FilterNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


@router.get("/fields", response_model=List[FieldEntry])
async def list_fields(formatter: ConditionFormatter = Depends(get_formatter)):
    """
    Catalog for the condition picker, with a starting condition per field.
    """
    return [
        FieldEntry(
            field=d.field,
            kind=d.kind,
            operators=list(d.allowed_operators),
            options=list(d.enum_options) if d.enum_options else None,
            virtual=d.is_virtual,
            label=formatter.labels.label("field", d.field),
            default_condition=FIELD_REGISTRY.default_condition(d.field),
        )
        for d in FIELD_REGISTRY.fields()
    ]


@router.get("/filters", response_model=List[FilterOverview])
async def list_filters(
    db: AsyncSession = Depends(get_db),
    formatter: ConditionFormatter = Depends(get_formatter),
    compiler: PredicateCompiler = Depends(get_compiler),
):
    overview = []
    for stored in await filter_service.list_filters(db):
        rows = await filter_service.get_condition_rows(db, stored.id)
        overview.append(FilterOverview(
            id=stored.id,
            name=stored.name,
            goal=stored.goal,
            summary=formatter.format_summary(rows),
            match_count=await filter_service.match_count(db, stored.id, compiler),
        ))
    return overview


@router.post("/filters", response_model=FilterCreated, status_code=status.HTTP_201_CREATED)
async def create_filter(payload: FilterCreate, db: AsyncSession = Depends(get_db)):
    logger.info("filter_create_requested", name=payload.name, condition_count=len(payload.conditions))
    try:
        filter_id = await filter_service.create_filter(db, payload, payload.conditions)
    except (UnknownFieldError, InvalidConditionValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreTransactionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return FilterCreated(id=filter_id)


@router.get("/filters/{filter_id}", response_model=FilterRead)
async def get_filter(
    filter_id: int,
    db: AsyncSession = Depends(get_db),
    formatter: ConditionFormatter = Depends(get_formatter),
):
    try:
        stored = await filter_service.get_filter(db, filter_id)
        conditions = await filter_service.get_conditions(db, filter_id)
    except FilterNotFoundError as e:
        raise _not_found(e)
    except (UnknownFieldError, InvalidConditionValueError) as e:
        # Stale rows (e.g. a removed field) must be visible to whoever edits the filter
        logger.warning("filter_has_invalid_condition", filter_id=filter_id, error=str(e))
        raise HTTPException(status_code=422, detail=str(e))

    return FilterRead(
        id=stored.id,
        name=stored.name,
        goal=stored.goal,
        conditions=conditions,
        summary=formatter.format_summary(conditions),
        created_at=stored.created_at,
        updated_at=stored.updated_at,
    )


@router.put("/filters/{filter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_filter(filter_id: int, payload: FilterUpdate, db: AsyncSession = Depends(get_db)):
    try:
        await filter_service.update_filter(db, filter_id, payload, payload.conditions)
    except FilterNotFoundError as e:
        raise _not_found(e)
    except (UnknownFieldError, InvalidConditionValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreTransactionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/filters/{filter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_filter(filter_id: int, db: AsyncSession = Depends(get_db)):
    try:
        await filter_service.delete_filter(db, filter_id)
    except FilterNotFoundError as e:
        raise _not_found(e)


@router.get("/filters/{filter_id}/count", response_model=FilterMatchCount)
async def count_matches(
    filter_id: int,
    db: AsyncSession = Depends(get_db),
    compiler: PredicateCompiler = Depends(get_compiler),
):
    try:
        stored = await filter_service.get_filter(db, filter_id)
        count = await filter_service.match_count(db, filter_id, compiler)
    except FilterNotFoundError as e:
        raise _not_found(e)
    return FilterMatchCount(filter_id=filter_id, count=count, goal=stored.goal)


@router.get("/filters/{filter_id}/procedures", response_model=List[ProcedureRead])
async def list_matching_procedures(
    filter_id: int,
    db: AsyncSession = Depends(get_db),
    compiler: PredicateCompiler = Depends(get_compiler),
):
    try:
        return await filter_service.matching_procedures(db, filter_id, compiler)
    except FilterNotFoundError as e:
        raise _not_found(e)
