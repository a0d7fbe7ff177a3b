"""API schemas for insights endpoints."""

from datetime import datetime

from pydantic import BaseModel, field_serializer

from cpq.services.insights.insights_service import InsightsResult
from cpq.services.insights.report import InsightsReport
from cpq.utils.datetime_utils import to_local


class InsightsResponse(BaseModel):
    report: InsightsReport
    generated_at: datetime
    quote_count: int
    from_cache: bool

    @field_serializer("generated_at")
    def serialize_generated_at(self, dt: datetime) -> str:
        """Serialize datetime to the local timezone."""
        localized = to_local(dt)
        assert localized is not None
        return localized.isoformat()

    @classmethod
    def from_result(cls, result: InsightsResult) -> "InsightsResponse":
        return cls(
            report=result.report,
            generated_at=result.generated_at,
            quote_count=result.quote_count,
            from_cache=result.from_cache,
        )
