from fastapi import APIRouter

from a11yscan.features.reports.routes.reports import router as reports_router
from a11yscan.features.scan.routes.scan import router as scan_router

api_router = APIRouter()

api_router.include_router(scan_router)
api_router.include_router(reports_router)
