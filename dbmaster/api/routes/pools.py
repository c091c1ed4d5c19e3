from typing import Any

from fastapi import APIRouter, HTTPException

from dbmaster.api.deps import PoolManagerDep
from dbmaster.schemas import ConnectionIn, Message, PoolStatsOut

router = APIRouter(prefix="/pools", tags=["pools"])


@router.get("/stats", response_model=PoolStatsOut)
def pool_stats(pools: PoolManagerDep) -> Any:
    """Registered pools with borrow/return counters."""
    return pools.stats()


@router.post("/close", response_model=Message)
def close_pool(pools: PoolManagerDep, body: ConnectionIn) -> Any:
    """Close the pool registered for these connection parameters."""
    if not pools.close_pool(body.to_config()):
        raise HTTPException(status_code=404, detail="Pool not found")
    return Message(message="Pool closed successfully")
