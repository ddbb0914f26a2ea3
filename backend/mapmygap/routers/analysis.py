"""Gap analysis router: JSON text analysis and file upload analysis."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from mapmygap.auth.dependencies import get_optional_user
from mapmygap.config import Settings, get_settings
from mapmygap.dependencies import (
    get_document_extractor,
    get_gap_analyzer,
    get_history_store,
)
from mapmygap.errors import DocumentExtractionError, PersistenceError, ValidationError
from mapmygap.models.analysis import (
    AnalysisEnvelope,
    AnalysisResult,
    AnalyzeRequest,
    Candidate,
    Content,
    ErrorResponse,
    Part,
    UploadAnalysisEnvelope,
)
from mapmygap.services.document_text_extractor import DocumentTextExtractor
from mapmygap.services.gap_analyzer import GapAnalyzer, document_hash
from mapmygap.services.history_store import HistoryStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])

UPLOAD_CHUNK_BYTES = 1024 * 1024
DEFAULT_FILENAME = "Pasted document"

_ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _envelope_fields(result: AnalysisResult, doc_hash: str) -> dict:
    text = json.dumps([c.model_dump(mode="json") for c in result.categories])
    return {
        "candidates": [Candidate(content=Content(parts=[Part(text=text)]))],
        "summary": result.summary,
        "framework": result.framework,
        "fallback_used": result.fallback_used,
        "document_hash": doc_hash,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def _record_history(
    store: Optional[HistoryStore],
    user: Optional[dict],
    result: AnalysisResult,
    filename: str,
) -> None:
    """Save the analysis for signed-in users. Failures never block the response."""
    if store is None or not user or not user.get("user_id"):
        return
    try:
        await store.save_analysis(user["user_id"], result, filename)
    except PersistenceError as e:
        logger.warning(f"Analysis history not saved: {e.details}")


def _parse_categories(raw: Optional[str]) -> Optional[list[str]]:
    """Parse the multipart ``categories`` field (a JSON array of strings)."""
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"categories must be a JSON array: {e.msg}") from e
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError("categories must be a JSON array of strings")
    return value


async def _copy_upload(file: UploadFile, out, max_bytes: int) -> int:
    """Stream an upload into ``out``, enforcing the size cap as it goes."""
    size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            return size
        size += len(chunk)
        if size > max_bytes:
            raise ValidationError(
                f"File exceeds the {max_bytes // (1024 * 1024)} MB upload limit"
            )
        out.write(chunk)


@router.post(
    "/analyze",
    response_model=AnalysisEnvelope,
    responses=_ERROR_RESPONSES,
)
async def analyze(
    body: AnalyzeRequest,
    analyzer: GapAnalyzer = Depends(get_gap_analyzer),
    history: Optional[HistoryStore] = Depends(get_history_store),
    current_user: Optional[dict] = Depends(get_optional_user),
) -> AnalysisEnvelope:
    """
    Analyze document text against a compliance framework.

    Returns the categories in a candidates envelope together with the
    computed summary. AI failures degrade to an all-gap fallback analysis
    flagged with ``fallbackUsed``.
    """
    result = await analyzer.analyze(
        body.file_content, body.framework, body.selected_categories
    )
    doc_hash = document_hash(body.file_content, result.framework.value)
    await _record_history(
        history, current_user, result, body.filename or DEFAULT_FILENAME
    )
    return AnalysisEnvelope(**_envelope_fields(result, doc_hash))


@router.post(
    "/upload-analyze",
    response_model=UploadAnalysisEnvelope,
    responses=_ERROR_RESPONSES,
)
async def upload_analyze(
    file: Optional[UploadFile] = File(None, description="Policy document"),
    framework: Optional[str] = Form(None, description="Framework identifier"),
    categories: Optional[str] = Form(
        None, description="JSON array of category names to restrict the analysis"
    ),
    analyzer: GapAnalyzer = Depends(get_gap_analyzer),
    extractor: DocumentTextExtractor = Depends(get_document_extractor),
    history: Optional[HistoryStore] = Depends(get_history_store),
    settings: Settings = Depends(get_settings),
    current_user: Optional[dict] = Depends(get_optional_user),
) -> UploadAnalysisEnvelope:
    """
    Extract text from an uploaded file and analyze it.

    Accepts .txt, .docx, .pdf, .xlsx and .xls files up to 10 MB.
    """
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    if not DocumentTextExtractor.is_supported(file.filename):
        raise ValidationError(
            f"Unsupported file type: {file.filename}. Allowed: "
            + ", ".join(sorted(DocumentTextExtractor.SUPPORTED_EXTENSIONS))
        )
    if not framework:
        raise ValidationError("framework is required")
    if file.size is not None and file.size > settings.max_upload_bytes:
        raise ValidationError(
            f"File exceeds the {settings.max_upload_bytes // (1024 * 1024)} MB upload limit"
        )

    selected = _parse_categories(categories)
    # Reject unknown frameworks before doing any extraction work
    analyzer.catalog.get(framework)

    suffix = os.path.splitext(file.filename)[1].lower()
    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as temp_file:
            temp_path = temp_file.name
            size = await _copy_upload(file, temp_file, settings.max_upload_bytes)
        logger.info(f"Received {suffix} upload ({size} bytes)")
        extraction = await extractor.extract_text(temp_path, file.filename)
    finally:
        if temp_path and os.path.exists(temp_path):
            os.unlink(temp_path)

    if not extraction.text.strip():
        raise DocumentExtractionError(
            "No text could be extracted from the uploaded file"
        )

    result = await analyzer.analyze(extraction.text, framework, selected)
    doc_hash = document_hash(extraction.text, result.framework.value)
    await _record_history(history, current_user, result, file.filename)
    return UploadAnalysisEnvelope(
        **_envelope_fields(result, doc_hash),
        extracted_text=extraction.text,
    )
