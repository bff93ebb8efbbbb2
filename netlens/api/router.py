from fastapi import APIRouter

from netlens.api.routes import queries, records, stats

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(queries.router, tags=["query"])
api_router.include_router(stats.router, tags=["stats"])
api_router.include_router(records.router, tags=["records"])
