"""Gap analysis request, result and response models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mapmygap.models.framework import FrameworkId


class ControlStatus(str, Enum):
    """Assessment outcome for a single control."""

    COVERED = "covered"
    PARTIAL = "partial"
    GAP = "gap"


class ControlResult(BaseModel):
    """Assessment of one control. Status is validated at construction."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Control identifier from the catalog")
    control: str = Field(default="", description="Control requirement text")
    status: ControlStatus = Field(..., description="covered, partial or gap")
    details: str = Field(default="", description="Why this status was assigned")
    recommendation: str = Field(default="", description="How to close the gap")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Models occasionally emit numeric ids such as 1.1 for PCI DSS
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("details", "recommendation", "control", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class CategoryResult(BaseModel):
    """Results for one framework category."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    results: list[ControlResult] = Field(default_factory=list)


class AnalysisSummary(BaseModel):
    """Aggregate counts and score, always derived from the control results."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    covered: int = Field(default=0, ge=0)
    partial: int = Field(default=0, ge=0)
    gaps: int = Field(default=0, ge=0)
    score: int = Field(default=0, ge=0, le=100)


class AnalysisResult(BaseModel):
    """Normalized gap analysis for one document against one framework."""

    model_config = ConfigDict(frozen=True)

    framework: FrameworkId
    categories: list[CategoryResult] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    fallback_used: bool = Field(
        default=False,
        description="True when the catalog fallback replaced the AI assessment",
    )


# ---------- Request models ----------


class AnalyzeRequest(BaseModel):
    """Body of POST /analyze.

    Fields are optional at the schema level so missing values are reported
    by the analysis pipeline; wrongly typed fields become a 400 in main.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_content: Optional[str] = Field(None, alias="fileContent")
    framework: Optional[str] = None
    filename: Optional[str] = Field(None, description="Shown in analysis history")
    selected_categories: Optional[list[str]] = Field(
        None, alias="selectedCategories", description="Restrict analysis scope"
    )


class GenerateControlTextRequest(BaseModel):
    """Body of POST /generate-control-text."""

    model_config = ConfigDict(populate_by_name=True)

    original_document: Optional[str] = Field(None, alias="originalDocument")
    target_control: Optional[str] = Field(None, alias="targetControl")
    framework: Optional[str] = None
    control_id: Optional[str] = Field(None, alias="controlId")
    status: Optional[str] = None
    details: Optional[str] = None


# ---------- Response models ----------


class Part(BaseModel):
    text: str


class Content(BaseModel):
    role: str = "model"
    parts: list[Part]


class Candidate(BaseModel):
    content: Content


class AnalysisEnvelope(BaseModel):
    """Analysis response wrapped in the provider-style candidates envelope.

    ``candidates[0].content.parts[0].text`` holds the JSON-encoded categories
    list, which is what existing web clients parse.
    """

    model_config = ConfigDict(populate_by_name=True)

    candidates: list[Candidate]
    summary: AnalysisSummary
    framework: FrameworkId
    fallback_used: bool = Field(default=False, alias="fallbackUsed")
    document_hash: str = Field(..., alias="documentHash")
    timestamp: str


class UploadAnalysisEnvelope(AnalysisEnvelope):
    """Envelope for POST /upload-analyze, including the extracted text."""

    extracted_text: str = Field(..., alias="extractedText")


class ControlTextResponse(BaseModel):
    """Body of a successful POST /generate-control-text."""

    model_config = ConfigDict(populate_by_name=True)

    generated_text: str = Field(..., alias="generatedText")
    fallback_used: bool = Field(default=False, alias="fallbackUsed")


class ErrorResponse(BaseModel):
    """Error body shared by all endpoints."""

    error: str
    details: Optional[str] = None
    suggestion: Optional[str] = None
