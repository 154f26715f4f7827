# transport_admin/core/pagination.py
"""
Core pagination helpers.

This module provides:
- `normalize_pagination` to clean up page/limit inputs using defaults
  and clamping.
- `pagination_payload` to render the metadata block returned by listings.
"""
from __future__ import annotations

from typing import Any, Dict

from transport_admin.config.settings import settings
from transport_admin.schemas.common.pagination import PaginationMeta, PaginationParams


def normalize_pagination(
    page: int | None,
    limit: int | None,
    default_limit: int | None = None,
) -> PaginationParams:
    """
    Normalize raw page & limit inputs into a PaginationParams object
    with sane defaults and a clamped max page size.

    Rules:
        - page < 1 or None -> 1
        - limit < 1 or None -> default_limit (or DEFAULT_GRIEVANCE_PAGE_SIZE)
        - limit > MAX_PAGE_SIZE -> MAX_PAGE_SIZE
    """
    if page is None or page < 1:
        page = 1

    if limit is None or limit < 1:
        limit = default_limit or settings.DEFAULT_GRIEVANCE_PAGE_SIZE

    if limit > settings.MAX_PAGE_SIZE:
        limit = settings.MAX_PAGE_SIZE

    return PaginationParams(page=page, limit=limit)


def pagination_payload(params: PaginationParams, total: int) -> Dict[str, Any]:
    """Render pagination metadata with the camelCase keys clients expect."""
    meta = PaginationMeta.create(page=params.page, limit=params.limit, total=total)
    return meta.model_dump(by_alias=True)
