"""
Structured values exchanged between pipeline steps.

Models with a ``Field(description=...)`` double as structured-output schemas
for the chat models.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ClarifyWithUser(BaseModel):
    """Structured output of the clarification call."""

    need_clarification: bool = Field(description="True when make, model or year is missing or ambiguous")
    question: Optional[str] = Field(default=None, description="One short question asking for the missing details")


class ClarificationResult(BaseModel):
    needs_clarification: bool
    question: Optional[str] = None


class CarDetails(BaseModel):
    make: str = Field(description="Manufacturer, e.g. Toyota")
    model: str = Field(description="Model name, e.g. Corolla")
    year: int = Field(description="Model year, e.g. 2018")
    body_type: Optional[str] = Field(default=None, description="sedan, hatchback, SUV, estate, ...")
    engine: Optional[str] = Field(default=None, description="petrol, diesel, hybrid, electric, ...")
    budget: Optional[str] = Field(default=None, description="Budget the user mentioned, if any")

    @property
    def label(self) -> str:
        return f"{self.year} {self.make} {self.model}".strip()


class AnalysisBrief(BaseModel):
    """Structured output of the brief writer."""

    analysis_brief: str = Field(description="What the analysts should find out")
    title: str = Field(default="", description="Short report title naming the car")
    car_details: CarDetails


class StatusUpdate(BaseModel):
    """Structured output of a status-update call."""

    title: str = Field(description="What is happening, at most 50 characters")
    message: str = Field(description="Concrete detail, at most 200 characters")


class SpecialistOutput(BaseModel):
    compressed_analysis: str
    raw_notes: str


class SupervisorOutcome(BaseModel):
    notes: List[str] = Field(default_factory=list)
    raw_notes: List[str] = Field(default_factory=list)
    iterations: int = 0
    dispatched: int = 0


class ReportResult(BaseModel):
    id: str
    title: str
    kind: str = "text"
    content: str = ""


class AnalysisResult(BaseModel):
    """Outcome of one car analysis run."""

    type: Literal["report", "clarifying_question", "problem", "cancelled"]
    data: Any = None

    def format(self) -> Dict[str, Any]:
        """Shape handed back to the chat client."""
        if self.type == "report":
            report = self.data if isinstance(self.data, ReportResult) else ReportResult.model_validate(self.data)
            return {
                "format": "report",
                "reportResult": report.model_dump(),
                "message": f"Car analysis completed: {report.title}",
            }
        if self.type == "clarifying_question":
            return {"format": "clarifying_questions", "message": str(self.data)}
        if self.type == "cancelled":
            return {"format": "cancelled", "message": "Car analysis was cancelled."}
        return {"format": "problem", "message": str(self.data)}
