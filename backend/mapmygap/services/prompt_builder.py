"""
Prompt construction for gap analysis and control-text generation.

Document text is always truncated before it is embedded, so a prompt never
carries more than ``analysis_max_chars`` / ``control_text_max_chars`` of it.
"""

import json
from typing import Optional

from mapmygap.models.framework import Category, Framework

ANALYSIS_MAX_CHARS = 8000
CONTROL_TEXT_MAX_CHARS = 4000

TRUNCATION_MARKER = "\n\n[... document truncated for analysis ...]"

ANALYSIS_SYSTEM_PROMPT = """You are a cybersecurity compliance expert performing a gap analysis of an organization's policy document against a compliance framework.

For every control you are given, decide whether the document covers it:
- "covered": the document explicitly and adequately addresses the control
- "partial": the document addresses some aspects but misses key requirements
- "gap": the document does not address the control

You MUST return valid JSON with this exact structure:
{
    "categories": [
        {
            "name": "Category name exactly as given",
            "description": "Category description",
            "results": [
                {
                    "id": "Control id exactly as given",
                    "control": "Control text",
                    "status": "covered",
                    "details": "Evidence from the document, or what is missing",
                    "recommendation": "Specific action to close the gap"
                }
            ]
        }
    ]
}

IMPORTANT:
- Use ONLY these status values: "covered", "partial", "gap"
- Keep every category name and control id exactly as provided
- Return ONLY the JSON object, no markdown or explanations"""

CONTROL_TEXT_SYSTEM_PROMPT = """You are a cybersecurity compliance expert. You write policy text for a specific control that matches the style and tone of an existing policy document, so it reads as if the same author wrote it.

Return only the generated policy text, no markdown fences or explanations."""


def truncate_document(text: str, max_chars: int) -> str:
    """Return at most ``max_chars`` characters of ``text``."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def _catalog_block(categories: tuple[Category, ...]) -> str:
    payload = [
        {
            "name": category.name,
            "description": category.description,
            "results": [
                {"id": c.id, "control": c.control} for c in category.controls
            ],
        }
        for category in categories
    ]
    return json.dumps(payload, indent=2)


def build_analysis_prompt(
    document_text: str,
    framework: Framework,
    categories: Optional[tuple[Category, ...]] = None,
    *,
    max_chars: int = ANALYSIS_MAX_CHARS,
) -> str:
    """Build the user message for a gap analysis.

    Args:
        document_text: Raw document text (truncated here)
        framework: Framework being analyzed
        categories: Scoped categories; the whole framework when omitted
        max_chars: Document character budget

    Returns:
        Prompt text
    """
    scoped = categories is not None and len(categories) < len(framework.categories)
    categories = categories if categories is not None else framework.categories

    excerpt = truncate_document(document_text, max_chars)
    if len(document_text) > max_chars:
        excerpt += TRUNCATION_MARKER

    names = "\n".join(f"- {category.name}" for category in categories)
    if scoped:
        scope = (
            "ANALYSIS SCOPE: analyze ONLY these categories and return no others:\n"
            f"{names}"
        )
    else:
        scope = f"Analyze ALL of these categories:\n{names}"

    return (
        f"Framework: {framework.name} ({framework.id.value})\n\n"
        f"{scope}\n\n"
        f"Controls to assess:\n{_catalog_block(categories)}\n\n"
        f"Document Content:\n{excerpt}"
    )


def build_control_text_prompt(
    document_text: str,
    target_control: str,
    framework: str,
    *,
    control_id: Optional[str] = None,
    status: Optional[str] = None,
    details: Optional[str] = None,
    max_chars: int = CONTROL_TEXT_MAX_CHARS,
) -> str:
    """Build the user message for drafting one control's policy text."""
    excerpt = truncate_document(document_text, max_chars)
    control_line = f"{control_id}: {target_control}" if control_id else target_control

    parts = [
        f"Original Document Content:\n{excerpt}",
        f"Target Control to Implement:\n{control_line}",
        f"Framework: {framework}",
    ]
    if status:
        parts.append(f"Current Status: {status}")
    if details:
        parts.append(f"Gap Details: {details}")
    parts.append(
        "Instructions:\n"
        "1. Match the original document's writing style, tone and terminology\n"
        "2. Structure the text with the headings Purpose, Scope, Standard "
        "and Procedures\n"
        "3. Make every statement specific, actionable and professional"
    )
    return "\n\n".join(parts)
