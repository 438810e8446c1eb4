from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, Query, status

from consignment.app.core.errors import ReportError
from consignment.app.services.filters import ReportFilters, make_filters

logger = logging.getLogger(__name__)


def get_report_filters(
    vendor_ids: list[UUID] = Query(default=[]),
    client_ids: list[UUID] = Query(default=[]),
    brand_ids: list[UUID] = Query(default=[]),
    category_ids: list[UUID] = Query(default=[]),
) -> ReportFilters:
    """Entity filters from repeatable query parameters; empty means no restriction."""
    return make_filters(vendor_ids, client_ids, brand_ids, category_ids)


def bad_request(exc: ReportError) -> HTTPException:
    logger.info("rejected report request: %s", exc)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
