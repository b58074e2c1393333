"""Query-string helpers shared by the list endpoints."""
from __future__ import annotations

from typing import Dict, List, Tuple

from flask import abort, request

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", str(DEFAULT_LIMIT)))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def parse_sort(columns: Dict, default: str) -> List:
    """`sort=a,-b` against an allowlist of API field -> column."""
    sort_param = request.args.get("sort", default)
    order_by = []
    for f in (s.strip() for s in sort_param.split(",")):
        if not f:
            continue
        desc = f.startswith("-")
        key = f[1:] if desc else f
        col = columns.get(key)
        if col is None:
            abort(400, description=f"Unsupported sort field: {key}. Allowed: {', '.join(columns)}")
        order_by.append(col.desc() if desc else col.asc())
    return order_by


def parse_bool_arg(name: str) -> bool | None:
    val = request.args.get(name)
    if val is None or val == "":
        return None
    val = val.lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    abort(400, description=f"{name} must be true or false")


def page_meta(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit}
