# hotel_api/common/paging.py
import math

from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 10
MAX_SIZE = 100

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except (TypeError, ValueError):
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("limit", request.args.get("size", DEFAULT_SIZE)))
        size = max(1, min(size, MAX_SIZE))
    except (TypeError, ValueError):
        size = DEFAULT_SIZE
    return page, size

def paginate(query, page: int = DEFAULT_PAGE, limit: int = DEFAULT_SIZE) -> dict:
    """
    Run `query` for one page. Returns {"data": [...], "pagination": {...}}.
    The caller is expected to have applied ordering already.
    """
    page = max(int(page or DEFAULT_PAGE), 1)
    limit = max(1, min(int(limit or DEFAULT_SIZE), MAX_SIZE))
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pages = math.ceil(total / limit) if total else 0
    return {
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
            "has_next": page < pages,
            "has_prev": page > 1,
        },
    }
