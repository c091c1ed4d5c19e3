"""
Health-check helpers for liveness and readiness probes.

Liveness: the process answers at all (no I/O).
Readiness: every registered pool with a free connection answers SELECT 1.
"""

import logging

from dbmaster.core.pool import PoolManager, get_pool_manager

logger = logging.getLogger(__name__)


def check_pools(manager: PoolManager | None = None) -> list[str]:
    """
    Probe every registered pool that has a free connection.

    Saturated pools are skipped so a probe never queues behind real traffic.
    Returns the fingerprints of pools that failed.
    """
    pm = manager if manager is not None else get_pool_manager()
    failures: list[str] = []
    for handle in pm.handles():
        status = handle.status()
        if status["closed"] or status["borrowers"] >= status["connection_limit"]:
            continue
        try:
            handle.probe()
        except Exception:
            logger.warning("Pool %s failed readiness probe", handle.fingerprint, exc_info=True)
            failures.append(handle.fingerprint)
    return failures


def liveness_check() -> tuple[bool, list[str]]:
    """
    Liveness probe with no I/O.
    Same return shape as readiness_check.
    """
    return (True, [])


def readiness_check(manager: PoolManager | None = None) -> tuple[bool, list[str]]:
    """
    Probe registered external pools.
    Returns (ok, list of failing pool fingerprints).
    """
    failures = [f"pool:{fp}" for fp in check_pools(manager)]
    return (len(failures) == 0, failures)
