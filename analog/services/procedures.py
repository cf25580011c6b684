from typing import Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from analog.core.errors import ProcedureNotFoundError
from analog.db.models import Procedure
from analog.db.session import transaction
from analog.schemas.procedure import ProcedureCreate, ProcedureUpdate

logger = structlog.get_logger()


async def list_procedures(db: AsyncSession) -> Sequence[Procedure]:
    # Newest first, like the home screen
    result = await db.execute(select(Procedure).order_by(Procedure.date.desc(), Procedure.case_number))
    return result.scalars().all()


async def get_procedure(db: AsyncSession, case_number: str) -> Procedure:
    result = await db.execute(select(Procedure).where(Procedure.case_number == case_number))
    procedure = result.scalars().first()
    if not procedure:
        raise ProcedureNotFoundError(case_number)
    return procedure


async def create_procedure(db: AsyncSession, payload: ProcedureCreate) -> Procedure:
    """
    Inserts a new procedure. A duplicate case number fails the transaction
    (StoreTransactionError wrapping the IntegrityError).
    """
    procedure = Procedure(**payload.model_dump())

    async with transaction(db, "create_procedure"):
        db.add(procedure)
        await db.flush()
    await db.refresh(procedure)

    logger.info("procedure_created", case_number=procedure.case_number)
    return procedure


async def update_procedure(db: AsyncSession, case_number: str, payload: ProcedureUpdate) -> Procedure:
    procedure = await get_procedure(db, case_number)
    changes = payload.model_dump(exclude_unset=True)

    async with transaction(db, "update_procedure"):
        for key, value in changes.items():
            setattr(procedure, key, value)
        await db.flush()
    await db.refresh(procedure)

    logger.info("procedure_updated", case_number=case_number, fields=sorted(changes))
    return procedure


async def delete_procedure(db: AsyncSession, case_number: str) -> None:
    await get_procedure(db, case_number)

    async with transaction(db, "delete_procedure"):
        await db.execute(delete(Procedure).where(Procedure.case_number == case_number))

    logger.info("procedure_deleted", case_number=case_number)
