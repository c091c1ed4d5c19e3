from typing import Annotated

from fastapi import Depends

from dbmaster.core.pool import PoolManager, get_pool_manager


def get_pools() -> PoolManager:
    return get_pool_manager()


PoolManagerDep = Annotated[PoolManager, Depends(get_pools)]
