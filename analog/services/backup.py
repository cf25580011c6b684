"""
Import/export of filters and procedures as one JSON document.

Export strips `operators` / `options` from conditions; import validates the
whole document (including the registry expansion of every condition) before
the first write, then inserts everything in a single transaction.
"""
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from analog.core.config import settings
from analog.core.errors import ImportFormatError, InvalidConditionValueError, StoreTransactionError, UnknownFieldError
from analog.core.metrics import IMPORTS
from analog.db.models import FilterCondition, Procedure
from analog.db.session import transaction
from analog.schemas.backup import (
    BackupDocument,
    ExportedBooleanCondition,
    ExportedCondition,
    ExportedEnumCondition,
    ExportedFilter,
    ExportedNumberCondition,
    ExportedTextCondition,
    ImportSummary,
)
from analog.schemas.condition import (
    BOOLEAN_CONDITION,
    ENUM_CONDITION,
    NUMBER_CONDITION,
    TEXT_CONDITION,
    Condition,
    ConditionLike,
    normalize_operator,
)
from analog.schemas.filter import FilterFields
from analog.schemas.procedure import ProcedureBase
from analog.services.filters import insert_filter, list_filters
from analog.services.procedures import list_procedures
from analog.services.registry import FIELD_REGISTRY, FieldRegistry

logger = structlog.get_logger()


@dataclass
class DecodedImport:
    document: BackupDocument
    # (name/goal, fully expanded conditions) per filter, in document order
    filters: List[Tuple[FilterFields, List[Condition]]]


def strip_condition(condition: ConditionLike) -> ExportedCondition:
    if condition.tag == TEXT_CONDITION:
        return ExportedTextCondition(field=condition.field, operator=normalize_operator(condition.operator), value=condition.value)
    if condition.tag == NUMBER_CONDITION:
        return ExportedNumberCondition(field=condition.field, operator=normalize_operator(condition.operator), value=condition.value)
    if condition.tag == BOOLEAN_CONDITION:
        return ExportedBooleanCondition(field=condition.field, value=condition.value)
    if condition.tag == ENUM_CONDITION:
        return ExportedEnumCondition(field=condition.field, value=condition.value)
    raise TypeError(f"Unsupported condition type: {condition.tag}")


async def build_document(db: AsyncSession) -> BackupDocument:
    result = await db.execute(select(FilterCondition).order_by(FilterCondition.filter_id, FilterCondition.id))
    rows_by_filter: Dict[int, List[FilterCondition]] = defaultdict(list)
    for row in result.scalars().all():
        rows_by_filter[row.filter_id].append(row)

    filters = []
    for stored in await list_filters(db):
        rows = rows_by_filter.get(stored.id, [])
        if not rows:
            # Not a reachable state; the document schema would reject it on import
            logger.warning("export_skipped_empty_filter", filter_id=stored.id)
            continue
        filters.append(ExportedFilter(
            name=stored.name,
            goal=stored.goal,
            conditions=[strip_condition(row) for row in rows],
        ))

    procedures = [ProcedureBase.model_validate(p) for p in await list_procedures(db)]
    return BackupDocument(filters=filters, procedures=procedures)


def encode_document(document: BackupDocument) -> bytes:
    return document.model_dump_json(by_alias=True).encode("utf-8")


def export_filename(timestamp: Optional[float] = None) -> str:
    millis = int((timestamp if timestamp is not None else time.time()) * 1000)
    return f"{settings.EXPORT_FILE_PREFIX}-{millis}.json"


async def export_to(db: AsyncSession, sink: BinaryIO) -> BackupDocument:
    """
    Writes the encoded document to a byte sink (file, upload buffer...).
    """
    document = await build_document(db)
    sink.write(encode_document(document))
    logger.info("export_written", filters=len(document.filters), procedures=len(document.procedures))
    return document


def decode_document(payload: Union[bytes, str], registry: FieldRegistry = FIELD_REGISTRY) -> DecodedImport:
    """
    Parses and validates a backup document without touching the store.
    Any problem (bad JSON, wrong shape, unknown enum literal, unknown field,
    disallowed operator) is reported as a single ImportFormatError.
    """
    try:
        document = BackupDocument.model_validate_json(payload)
        filters = []
        for exported in document.filters:
            conditions = [
                registry.expand(c.field, c.tag, getattr(c, "operator", None), c.value)
                for c in exported.conditions
            ]
            filters.append((FilterFields(name=exported.name, goal=exported.goal), conditions))
    except ValidationError as e:
        raise ImportFormatError(f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}") from e
    except (UnknownFieldError, InvalidConditionValueError) as e:
        raise ImportFormatError(str(e)) from e

    return DecodedImport(document=document, filters=filters)


def _insert_ignoring_conflicts(db: AsyncSession):
    # Skip-on-conflict is dialect specific
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(Procedure)
    return sqlite.insert(Procedure)


async def import_document(db: AsyncSession, payload: Union[bytes, str]) -> ImportSummary:
    try:
        decoded = decode_document(payload)
    except ImportFormatError as e:
        IMPORTS.labels(outcome="rejected").inc()
        logger.warning("import_rejected", reason=e.reason)
        raise

    # Existing procedures are never overwritten; duplicates inside the
    # document are inserted once (first occurrence wins)
    incoming: Dict[str, ProcedureBase] = {}
    for procedure in decoded.document.procedures:
        incoming.setdefault(procedure.case_number, procedure)

    existing = set()
    if incoming:
        result = await db.execute(select(Procedure.case_number).where(Procedure.case_number.in_(list(incoming))))
        existing = set(result.scalars().all())
    to_insert = [p.model_dump() for key, p in incoming.items() if key not in existing]

    try:
        async with transaction(db, "import_document"):
            if to_insert:
                stmt = _insert_ignoring_conflicts(db).values(to_insert)
                await db.execute(stmt.on_conflict_do_nothing(index_elements=["case_number"]))
            for fields, conditions in decoded.filters:
                await insert_filter(db, fields, conditions)
    except StoreTransactionError:
        IMPORTS.labels(outcome="failed").inc()
        raise

    summary = ImportSummary(
        filters_count=len(decoded.filters),
        procedures_count=len(to_insert),
        procedures_skipped=len(decoded.document.procedures) - len(to_insert),
    )
    IMPORTS.labels(outcome="success").inc()
    logger.info("import_completed", **summary.model_dump())
    return summary


async def import_from(db: AsyncSession, source: BinaryIO) -> ImportSummary:
    return await import_document(db, source.read())
