"""
LLM-backed analysis of document text.

`AnalysisRequester.analyze` sends one prompt and parses the structured reply.
Every field that is missing or malformed falls back to a generic default, so
the result always carries a summary, key points, legal terms and warnings.
Which path was taken is reported through `AnalysisOutcome.parse_status`.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from legalease.core.config import Settings
from legalease.core.text import truncate

from .llm import ChatTurn, TextGenerator

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)

SYSTEM_PROMPT = """You are a legal document expert who explains documents in plain English.

Rules:
- Never state that the document is unreadable, corrupted, empty or incomplete.
- Always produce a full analysis, even when only part of the text is available.
- Respond with a single JSON object and nothing else, using exactly these fields:
  "summary": a clear, simplified explanation of the document (several sentences),
  "keyPoints": an array of the most important points (strings),
  "legalTerms": an array of objects {"term": "...", "explanation": "..."} explaining legal terms simply,
  "warnings": an array of important warnings or things to watch out for (strings)."""

DEFAULT_KEY_POINTS = [
    "Review the parties involved and the obligations each of them takes on.",
    "Check all dates, deadlines and renewal or termination terms.",
    "Note any payment amounts, fees or penalties described in the document.",
]

DEFAULT_LEGAL_TERMS = [
    {"term": "Agreement", "explanation": "A legally binding arrangement between two or more parties."},
    {"term": "Obligation", "explanation": "Something a party is legally required to do under the document."},
    {"term": "Liability", "explanation": "Legal responsibility for losses, damages or debts."},
    {"term": "Termination", "explanation": "How and when the arrangement can be ended."},
]

DEFAULT_WARNINGS = [
    "This analysis is informational only and is not legal advice.",
    "Please consult a qualified legal professional before signing or acting on this document.",
]


class LegalTerm(BaseModel):
    term: str
    explanation: str


class DocumentAnalysis(BaseModel):
    summary: str = Field(..., min_length=1)
    key_points: list[str] = Field(..., min_length=1)
    legal_terms: list[LegalTerm] = Field(..., min_length=1)
    warnings: list[str] = Field(..., min_length=1)


class ParseStatus(str, Enum):
    PARSED = "parsed"  # every field came from the model
    PARTIAL = "partial"  # some fields were defaulted
    DEFAULTED = "defaulted"  # reply was not a JSON object


@dataclass
class DocumentMetadata:
    title: str
    filename: str
    file_type: str
    file_size: int = 0


@dataclass
class AnalysisOutcome:
    analysis: DocumentAnalysis
    parse_status: ParseStatus
    defaulted_fields: list[str] = field(default_factory=list)


def default_summary(metadata: DocumentMetadata) -> str:
    return (
        f'The document "{metadata.filename}" is a {metadata.file_type.upper()} file titled '
        f'"{metadata.title}". It appears to set out legal terms, rights and obligations '
        "between the parties involved. Read each section carefully, paying attention to "
        "deadlines, payments and termination conditions. Consider asking a legal "
        "professional to review it before relying on it."
    )


def strip_code_fence(reply: str) -> str:
    """Remove a surrounding ``` fence (optionally tagged, e.g. ```json) from a reply."""
    match = _CODE_FENCE.match(reply)
    if match:
        return match.group(1).strip()
    return reply.strip()


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _clean_strings(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items or None


def _clean_legal_terms(value: Any) -> list[LegalTerm] | None:
    # A plain {"Term": "explanation"} mapping is also accepted
    if isinstance(value, dict):
        value = [{"term": k, "explanation": v} for k, v in value.items()]
    if not isinstance(value, list):
        return None

    terms = []
    for item in value:
        term = explanation = None
        if isinstance(item, dict):
            term = _first(item, "term", "name")
            explanation = _first(item, "explanation", "definition", "meaning", "description")
        elif isinstance(item, str) and ":" in item:
            term, _, explanation = item.partition(":")
        if isinstance(term, str) and isinstance(explanation, str) and term.strip() and explanation.strip():
            terms.append(LegalTerm(term=term.strip(), explanation=explanation.strip()))
    return terms or None


def parse_analysis(reply: str, metadata: DocumentMetadata) -> AnalysisOutcome:
    """
    Parse a model reply into a complete DocumentAnalysis.

    Args:
        reply: Raw text returned by the model
        metadata: Document metadata used to build the default summary

    Returns:
        AnalysisOutcome tagged with how much of the reply was usable
    """
    try:
        payload = json.loads(strip_code_fence(reply or ""))
    except (json.JSONDecodeError, TypeError):
        payload = None

    if not isinstance(payload, dict):
        logger.warning(f"Analysis reply for {metadata.filename} is not a JSON object; using defaults")
        analysis = DocumentAnalysis(
            summary=default_summary(metadata),
            key_points=list(DEFAULT_KEY_POINTS),
            legal_terms=[LegalTerm(**t) for t in DEFAULT_LEGAL_TERMS],
            warnings=list(DEFAULT_WARNINGS),
        )
        return AnalysisOutcome(
            analysis=analysis,
            parse_status=ParseStatus.DEFAULTED,
            defaulted_fields=["summary", "key_points", "legal_terms", "warnings"],
        )

    defaulted = []

    summary = payload.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = default_summary(metadata)
        defaulted.append("summary")

    key_points = _clean_strings(_first(payload, "keyPoints", "key_points"))
    if key_points is None:
        key_points = list(DEFAULT_KEY_POINTS)
        defaulted.append("key_points")

    legal_terms = _clean_legal_terms(_first(payload, "legalTerms", "legal_terms"))
    if legal_terms is None:
        legal_terms = [LegalTerm(**t) for t in DEFAULT_LEGAL_TERMS]
        defaulted.append("legal_terms")

    warnings = _clean_strings(payload.get("warnings"))
    if warnings is None:
        warnings = list(DEFAULT_WARNINGS)
        defaulted.append("warnings")

    if defaulted:
        logger.info(f"Defaulted analysis fields for {metadata.filename}: {', '.join(defaulted)}")

    return AnalysisOutcome(
        analysis=DocumentAnalysis(
            summary=summary.strip(),
            key_points=key_points,
            legal_terms=legal_terms,
            warnings=warnings,
        ),
        parse_status=ParseStatus.PARTIAL if defaulted else ParseStatus.PARSED,
        defaulted_fields=defaulted,
    )


class AnalysisRequester:
    """Builds the analysis prompt, calls the text generator and parses the reply."""

    def __init__(
        self,
        generator: TextGenerator,
        max_input_chars: int | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        settings = Settings()
        self.generator = generator
        self.max_input_chars = max_input_chars or settings.ANALYSIS_MAX_INPUT_CHARS
        self.temperature = settings.ANALYSIS_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.ANALYSIS_MAX_TOKENS

    def build_messages(self, text: str, metadata: DocumentMetadata) -> list[ChatTurn]:
        user_prompt = (
            f"Document title: {metadata.title}\n"
            f"File name: {metadata.filename} ({metadata.file_type.upper()})\n\n"
            "Analyze this legal document and return the JSON object described above.\n\n"
            f"{truncate(text, self.max_input_chars)}"
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    async def analyze(self, text: str, metadata: DocumentMetadata) -> AnalysisOutcome:
        """
        Analyze document text with a single model call.

        Raises:
            LLMServiceError: If the generator fails; parse problems never raise
        """
        messages = self.build_messages(text, metadata)
        logger.info(f"Requesting analysis for {metadata.filename} ({min(len(text), self.max_input_chars)} chars)")

        reply = await self.generator.generate(messages, temperature=self.temperature, max_tokens=self.max_tokens)

        outcome = parse_analysis(reply, metadata)
        logger.info(f"Analysis for {metadata.filename} finished with parse status '{outcome.parse_status.value}'")
        return outcome
