"""
Behavioral insights schemas.

``BehavioralInsights`` is both the shape the LLM is asked to return and the
shape stored in ``patient_insights``.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FrequentQuestion(BaseModel):
    question: str
    count: int = 1


class BehavioralInsights(BaseModel):
    """Structured analysis of a patient's recent conversations."""
    model_config = ConfigDict(extra="ignore")

    mood: Literal["positive", "neutral", "concerned", "unknown"] = "unknown"
    streakDays: int = 0
    concerns: List[str] = Field(default_factory=list)
    positiveMoments: List[str] = Field(default_factory=list)
    memoryTopicsToReinforce: List[str] = Field(default_factory=list)
    frequentQuestions: List[FrequentQuestion] = Field(default_factory=list)
    behavioralTrends: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("mood", mode="before")
    @classmethod
    def _normalize_mood(cls, value: Any) -> str:
        value = str(value or "unknown").strip().lower()
        return value if value in {"positive", "neutral", "concerned", "unknown"} else "unknown"


class AnalyzeInsightsRequest(BaseModel):
    """Body of POST /patients/{id}/insights/analyze."""
    lookbackDays: int = Field(default=30, ge=1, le=90)
    forceRefresh: bool = False


class AnalyzeInsightsResponse(BaseModel):
    message: str
    cached: bool = False
    analysisTimestamp: Optional[datetime] = None
    conversationsAnalyzed: Optional[int] = None
    messagesAnalyzed: Optional[int] = None
    insights: Optional[Dict[str, Any]] = None


class InsightsResponse(BaseModel):
    insights: Optional[Dict[str, Any]] = None
