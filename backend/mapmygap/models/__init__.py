from mapmygap.models.analysis import (
    AnalysisEnvelope,
    AnalysisResult,
    AnalysisSummary,
    AnalyzeRequest,
    CategoryResult,
    ControlResult,
    ControlStatus,
    ControlTextResponse,
    ErrorResponse,
    GenerateControlTextRequest,
    UploadAnalysisEnvelope,
)
from mapmygap.models.framework import (
    Category,
    CategorySummary,
    Control,
    Framework,
    FrameworkDetail,
    FrameworkId,
    FrameworkListResponse,
    FrameworkSummary,
)
from mapmygap.models.history import (
    HistoryDeleteResponse,
    HistoryEntry,
    HistoryListResponse,
)

__all__ = [
    # Analysis models
    "AnalysisEnvelope",
    "AnalysisResult",
    "AnalysisSummary",
    "AnalyzeRequest",
    "CategoryResult",
    "ControlResult",
    "ControlStatus",
    "ControlTextResponse",
    "ErrorResponse",
    "GenerateControlTextRequest",
    "UploadAnalysisEnvelope",
    # Framework catalog models
    "Category",
    "CategorySummary",
    "Control",
    "Framework",
    "FrameworkDetail",
    "FrameworkId",
    "FrameworkListResponse",
    "FrameworkSummary",
    # History models
    "HistoryDeleteResponse",
    "HistoryEntry",
    "HistoryListResponse",
]
