"""Summaries and keywords for uploaded knowledge-base documents."""

import re
from collections import Counter
from pathlib import Path
from typing import Optional

import structlog
from PyPDF2 import PdfReader

from sequence_engine.clients.llm import LanguageModel, parse_json_response

log = structlog.get_logger()

MAX_SUMMARY_LENGTH = 320
MAX_KEYWORDS = 10
MAX_SOURCE_CHARS = 12000
MIN_SENTENCE_LENGTH = 20

EMPTY_SUMMARY = "Summary unavailable."
UNREADABLE_SUMMARY = "PDF summary unavailable."

DOMAIN_KEYWORDS = (
    "spatial biology", "transcriptomics", "proteomics", "single cell", "ffpe",
    "tumor microenvironment", "biomarker", "immunology", "oncology",
    "neuroscience", "high plex", "subcellular", "rna", "protein", "imaging",
    "pathology", "workflow", "validation", "clinical", "assay",
    "geomx", "cosmx", "cellscape",
)

STOPWORDS = frozenset({
    "with", "from", "that", "this", "were", "have", "using", "into", "through",
    "their", "these", "study", "data", "analysis", "results", "method",
    "methods", "sample", "samples", "human", "mouse", "figure", "table",
    "supplementary", "background", "conclusion", "introduction",
})

SUMMARY_PROMPT = """Summarize this scientific document for a sales knowledge base.

Return only JSON:
{"summary": "two plain sentences on what the document shows and why it matters", "keywords": ["up to 10 lowercase domain keywords"]}"""

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_NON_WORD = re.compile(r"[^a-z0-9\s-]")


def extract_pdf_text(path: Path) -> str:
    """Concatenated text of every page; empty when the PDF is unreadable."""
    try:
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        log.warning("pdf_extract_failed", path=str(path), error=str(e))
        return ""
    return "\n\n".join(p for p in pages if p.strip())


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def build_summary(text: str) -> str:
    cleaned = normalize_whitespace(text)
    if not cleaned:
        return EMPTY_SUMMARY

    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(cleaned) if len(s.strip()) >= MIN_SENTENCE_LENGTH]
    base = " ".join(sentences[:2]) or cleaned[:MAX_SUMMARY_LENGTH]
    if len(base) > MAX_SUMMARY_LENGTH:
        base = base[:MAX_SUMMARY_LENGTH - 1] + "…"
    return base


def extract_document_keywords(text: str) -> list[str]:
    """Domain terms present in the text, then the most frequent long tokens."""
    lower = text.lower()
    domain = [keyword for keyword in DOMAIN_KEYWORDS if keyword in lower]

    tokens = [
        token for token in _NON_WORD.sub(" ", lower).split()
        if len(token) >= 4 and token not in STOPWORDS
    ]
    frequent = [token for token, _ in Counter(tokens).most_common(MAX_KEYWORDS)]

    combined = list(dict.fromkeys(domain + frequent))
    return combined[:MAX_KEYWORDS]


async def summarize_document(
    text: str,
    file_name: str,
    model: Optional[LanguageModel] = None,
) -> tuple[str, list[str]]:
    """Return (summary, keywords) for a document's text.

    A model summary is used when a model is given and answers usefully;
    otherwise the summary is the document's first sentences.
    """
    source = text[:MAX_SOURCE_CHARS]
    if not source.strip():
        log.warning("document_text_empty", file_name=file_name)
        return UNREADABLE_SUMMARY, []

    summary = build_summary(source)
    keywords = extract_document_keywords(source)

    if model is None:
        return summary, keywords

    try:
        response = await model.complete(SUMMARY_PROMPT, f"File: {file_name}\n\n{source}")
        parsed = parse_json_response(response)
        model_summary = (parsed.get("summary") or "").strip()
        model_keywords = [str(k).lower().strip() for k in parsed.get("keywords") or [] if str(k).strip()]
    except Exception as e:
        log.warning("document_summary_model_fallback", file_name=file_name, error=str(e))
        return summary, keywords

    if model_summary:
        summary = model_summary[:MAX_SUMMARY_LENGTH]
    if model_keywords:
        keywords = list(dict.fromkeys(model_keywords))[:MAX_KEYWORDS]
    return summary, keywords


async def summarize_pdf(path: Path, model: Optional[LanguageModel] = None) -> tuple[str, list[str]]:
    return await summarize_document(extract_pdf_text(path), path.name, model)
