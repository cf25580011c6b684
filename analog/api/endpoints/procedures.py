from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from analog.core.errors import ProcedureNotFoundError, StoreTransactionError
from analog.db.session import get_db
from analog.schemas.procedure import ProcedureCreate, ProcedureRead, ProcedureUpdate
from analog.services import procedures as procedure_service

router = APIRouter()


@router.get("/procedures", response_model=List[ProcedureRead])
async def list_procedures(db: AsyncSession = Depends(get_db)):
    return await procedure_service.list_procedures(db)


@router.post("/procedures", response_model=ProcedureRead, status_code=status.HTTP_201_CREATED)
async def create_procedure(payload: ProcedureCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await procedure_service.create_procedure(db, payload)
    except StoreTransactionError:
        # Case numbers are unique
        raise HTTPException(status_code=409, detail=f"Procedure '{payload.case_number}' already exists")


@router.get("/procedures/{case_number}", response_model=ProcedureRead)
async def get_procedure(case_number: str, db: AsyncSession = Depends(get_db)):
    try:
        return await procedure_service.get_procedure(db, case_number)
    except ProcedureNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/procedures/{case_number}", response_model=ProcedureRead)
async def update_procedure(case_number: str, payload: ProcedureUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await procedure_service.update_procedure(db, case_number, payload)
    except ProcedureNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreTransactionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/procedures/{case_number}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_procedure(case_number: str, db: AsyncSession = Depends(get_db)):
    try:
        await procedure_service.delete_procedure(db, case_number)
    except ProcedureNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
