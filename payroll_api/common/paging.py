# payroll_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except Exception:
        size = DEFAULT_SIZE
    return page, size

def paginate(q):
    """Apply ?page=&size= to a query; returns (rows, meta)."""
    page, size = page_limit()
    total = q.count()
    rows = q.offset((page - 1) * size).limit(size).all()
    return rows, {"page": page, "size": size, "total": total}
