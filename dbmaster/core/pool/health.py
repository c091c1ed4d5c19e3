"""
Connection health check for external DBs.
"""

from typing import Any

from .connect import execute


def ping(conn: Any) -> None:
    """Run SELECT 1; raises whatever the driver raises."""
    cur = execute(conn, "SELECT 1")
    try:
        cur.fetchone()
    finally:
        cur.close()


def health_check(conn: Any) -> bool:
    """
    Run SELECT 1 and return True if no exception.
    """
    try:
        ping(conn)
        return True
    except Exception:
        return False
