"""Shared utility functions for blueprints and services.

get_or_404:          tuple-return lookup (NOT abort)
paginate_query:      pagination envelope used by every list endpoint
"""
import math

from portal.models import db
from portal.utils.errors import E, api_error

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (jsonify_response, 404))

        obj, err = get_or_404(Employee, emp_id)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk) if pk else None
    if not obj:
        return None, api_error(E.NOT_FOUND, f"{label} not found")
    return obj, None


def parse_pagination(args):
    """Read ``page`` / ``limit`` query params, clamped to sane bounds."""
    page = max(1, args.get("page", 1, type=int) or 1)
    limit = args.get("limit", DEFAULT_PAGE_SIZE, type=int) or DEFAULT_PAGE_SIZE
    limit = min(MAX_PAGE_SIZE, max(1, limit))
    return page, limit


def paginate_query(query, page, limit, serializer=None, key="items"):
    """Run ``query`` for one page and wrap it in the pagination envelope.

    Returns:
        {key: [...], "pagination": {currentPage, totalPages, totalItems,
        itemsPerPage, hasNextPage, hasPreviousPage}}
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = math.ceil(total / limit) if total else 0
    serializer = serializer or (lambda obj: obj.to_dict())
    return {
        key: [serializer(row) for row in rows],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalItems": total,
            "itemsPerPage": limit,
            "hasNextPage": page < total_pages,
            "hasPreviousPage": page > 1,
        },
    }
