from fastapi import APIRouter

from dbmaster.api.routes import connections, pools, query, schema, tables, utils

api_router = APIRouter()
api_router.include_router(utils.router)
api_router.include_router(connections.router)
api_router.include_router(query.router)
api_router.include_router(schema.router)
api_router.include_router(tables.router)
api_router.include_router(pools.router)
