from fastapi import APIRouter
from gridquery.api import tables

router = APIRouter()
router.include_router(tables.router, prefix="/tables", tags=["Tables"])
