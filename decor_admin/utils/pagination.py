"""Pagination utilities shared by the admin pages and the JSON API."""
from __future__ import annotations

from typing import Any, Callable, Dict, List

from flask import Request, request, session, url_for

PER_PAGE_OPTIONS: tuple[int, ...] = (10, 20, 50, 100)
DEFAULT_PER_PAGE: int = 20
PER_PAGE_ARGS: tuple[str, ...] = ("per_page", "pageSize", "limit")


def _resolve_per_page(per_page: int) -> int:
    """Return a safe per-page value limited to the configured options."""

    if per_page in PER_PAGE_OPTIONS:
        return per_page
    return DEFAULT_PER_PAGE


def get_page_args(req: Request | None = None, remember: bool = True) -> tuple[int, int]:
    """Return sanitized ``(page, per_page)`` from the request.

    ``per_page`` may also arrive as ``pageSize`` or ``limit``. Admin pages
    remember the chosen page size in the session; API calls pass
    ``remember=False`` so each request stands alone.
    """

    req = req or request
    page = max(req.args.get("page", 1, type=int) or 1, 1)
    per_page_arg = next(
        (
            req.args.get(name, type=int)
            for name in PER_PAGE_ARGS
            if req.args.get(name, type=int) is not None
        ),
        None,
    )
    if per_page_arg is not None:
        per_page = _resolve_per_page(per_page_arg)
        if remember:
            session["pagination_per_page"] = per_page
    elif remember:
        per_page = _resolve_per_page(session.get("pagination_per_page", DEFAULT_PER_PAGE))
    else:
        per_page = DEFAULT_PER_PAGE
    return page, per_page


def build_pagination_links(pagination) -> List[int | None]:
    """Generate a compact list of page numbers (with gaps) for navigation."""

    total_pages = pagination.pages or 1
    current_page = pagination.page or 1

    if total_pages <= 1:
        return [1]

    block_start = max(min(current_page - 1, total_pages - 2), 1)
    block_end = min(block_start + 2, total_pages)

    pages = {1, total_pages}
    pages.update(range(block_start, block_end + 1))

    result: List[int | None] = []
    last_number: int | None = None
    for number in sorted(pages):
        if last_number is not None and number - last_number > 1:
            result.append(None)
        result.append(number)
        last_number = number
    return result


def build_pagination_url(page: int, per_page: int | None = None) -> str:
    """Build a URL pointing to a specific page while preserving query args."""

    args = request.args.to_dict()
    args["page"] = page
    if per_page is not None:
        args["per_page"] = per_page
    view_args = dict(request.view_args or {})
    return url_for(request.endpoint, **view_args, **args)


def serialize_page(pagination, serializer: Callable[[Any], Dict[str, Any]]) -> Dict[str, Any]:
    """Shape a Flask-SQLAlchemy pagination object for a JSON response."""

    return {
        "items": [serializer(item) for item in pagination.items],
        "total": pagination.total,
        "page": pagination.page,
        "per_page": pagination.per_page,
        "pages": pagination.pages,
    }
