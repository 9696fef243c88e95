from datetime import datetime
from typing import Dict, Optional, Tuple

from flask import Request
from flask_sqlalchemy.pagination import Pagination

from quoteflow.errors import ValidationError

MAX_PER_PAGE = 100


def page_args(request: Request, default_per_page: int = 20) -> Tuple[int, int]:
    """Read ``page`` and ``limit`` from the query string, clamped to sane bounds."""
    page = max(request.args.get('page', 1, type=int) or 1, 1)
    per_page = request.args.get('limit', default_per_page, type=int) or default_per_page
    return page, min(max(per_page, 1), MAX_PER_PAGE)


def date_arg(request: Request, name: str) -> Optional[datetime]:
    value = request.args.get(name)
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise ValidationError(f"{name} must be formatted YYYY-MM-DD", details={name: value})


def pagination_dict(page: Pagination) -> Dict:
    return {
        'currentPage': page.page,
        'totalPages': page.pages,
        'totalItems': page.total,
        'itemsPerPage': page.per_page,
    }
