"""Compliance framework catalog models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FrameworkId(str, Enum):
    """Supported compliance frameworks."""

    NIST_CSF = "NIST_CSF"
    NIST_800_53 = "NIST_800_53"
    PCI_DSS = "PCI_DSS"
    ISO_27001 = "ISO_27001"
    SOC_2 = "SOC_2"


class Control(BaseModel):
    """A single control requirement as shipped in the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Control identifier, e.g. 'PR.AC-1' or 'A.5.1'")
    control: str = Field(..., description="Requirement text")
    recommendation: str = Field(
        ..., description="Default recommendation when the control is a gap"
    )


class Category(BaseModel):
    """A group of controls (function, family, requirement, trust criterion)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Category name, unique within a framework")
    description: str = Field(default="", description="Category description")
    controls: tuple[Control, ...] = Field(default_factory=tuple)

    @property
    def abbreviation(self) -> str | None:
        """Trailing '(XX)' abbreviation of the name, if present."""
        if self.name.endswith(")") and "(" in self.name:
            return self.name[self.name.rindex("(") + 1 : -1].strip()
        return None


class Framework(BaseModel):
    """A compliance framework and its ordered categories."""

    model_config = ConfigDict(frozen=True)

    id: FrameworkId
    name: str = Field(..., description="Display name")
    description: str = Field(default="")
    categories: tuple[Category, ...] = Field(default_factory=tuple)

    @property
    def control_count(self) -> int:
        return sum(len(c.controls) for c in self.categories)

    @property
    def category_names(self) -> list[str]:
        return [c.name for c in self.categories]


# ---------- Response models for catalog browsing ----------


class ControlSummary(BaseModel):
    """Summary of a control for listing."""

    id: str
    control: str
    recommendation: str


class CategorySummary(BaseModel):
    """Summary of a framework category."""

    name: str
    description: str
    control_count: int
    controls: list[ControlSummary] = Field(default_factory=list)


class FrameworkSummary(BaseModel):
    """Framework listing entry."""

    id: FrameworkId
    name: str
    description: str
    category_count: int
    total_controls: int


class FrameworkDetail(FrameworkSummary):
    """Framework with its categories and controls."""

    categories: list[CategorySummary] = Field(default_factory=list)


class FrameworkListResponse(BaseModel):
    frameworks: list[FrameworkSummary]
