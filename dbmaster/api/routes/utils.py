from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dbmaster.api.deps import PoolManagerDep
from dbmaster.core.health import liveness_check, readiness_check

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/liveness/", response_model=None)
def liveness() -> bool | JSONResponse:
    """
    Liveness probe: is the process alive and responsive?

    Lightweight: no database I/O.  If this fails the container should be
    restarted by the orchestrator.
    """
    ok, failures = liveness_check()
    if not ok:
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Process unhealthy", "data": failures},
        )
    return True


@router.get("/health-check/", response_model=None)
def health_check(pools: PoolManagerDep) -> bool | JSONResponse:
    """
    Readiness probe: can the service reach its registered databases?

    Probes every registered pool that has a free connection.
    Returns 200 with true if all of them answer; 503 otherwise.
    """
    ok, failures = readiness_check(pools)
    if not ok:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "message": "Service Unavailable",
                "data": failures,
            },
        )
    return True
