"""Shape of the insights report returned by the model."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Level = Literal["high", "medium", "low"]
InsightKind = Literal["opportunity", "warning", "information"]


class DescriptiveInsight(BaseModel):
    title: str
    description: str
    impact: Level = "medium"
    kind: InsightKind = "information"


class PredictiveInsight(BaseModel):
    title: str
    description: str
    confidence: Level = "medium"
    kind: InsightKind = "information"


class Recommendation(BaseModel):
    title: str
    description: str
    priority: Level = "medium"
    estimated_impact: str = ""


class InsightsReport(BaseModel):
    executive_summary: str
    descriptive_insights: list[DescriptiveInsight] = Field(default_factory=list)
    predictive_insights: list[PredictiveInsight] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)


class CachedInsights(BaseModel):
    """Report plus the data needed to decide whether it is still current."""

    report: InsightsReport
    generated_at: datetime
    quote_count: int
