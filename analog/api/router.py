from fastapi import APIRouter
from analog.api.endpoints import backup, filters, procedures

api_router = APIRouter()

# Register the endpoints
api_router.include_router(filters.router, tags=["Filters"])
api_router.include_router(procedures.router, tags=["Procedures"])
api_router.include_router(backup.router, tags=["Backup"])
