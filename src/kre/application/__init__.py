"""Application facade exports for stable use-case API."""

from kre.application.historical_use_case import build_backend, execute_historical
from kre.application.resource_usage_use_case import execute_resource_usage
from kre.application.use_case_utils import ReportResult

__all__ = [
    "build_backend",
    "execute_historical",
    "execute_resource_usage",
    "ReportResult",
]
