from fastapi import APIRouter
from tabledata.api.data.router import router as data_router

router = APIRouter()
router.include_router(data_router, prefix="/v1/tables", tags=["DataTables"])
