import base64
from typing import Any


def jsonable_value(value: Any) -> Any:
    """Make a driver value JSON friendly; binary that is not UTF-8 becomes base64."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(raw).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return value


def jsonable_rows(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{k: jsonable_value(v) for k, v in row.items()} for row in rows]
