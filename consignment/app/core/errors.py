"""Errors raised by the reporting services.

All of them subclass ``ValueError`` so endpoints can translate them into
HTTP 400 responses the same way other validation failures are handled.
"""

from __future__ import annotations


class ReportError(ValueError):
    """Base class for rejected report requests."""


class InvalidRangeError(ReportError):
    """Missing date bound, or start date after end date."""


class InvalidGranularityError(ReportError):
    """Granularity token is not one of day / week / month."""


class InvalidGroupByError(ReportError):
    """Group-by dimension is not one of vendor / brand / category / client."""


class InvalidMetricError(ReportError):
    """Unknown time-series metric name."""
