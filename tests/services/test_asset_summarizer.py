from pathlib import Path
from unittest.mock import patch

import pytest

from sequence_engine.services.asset_summarizer import (
    EMPTY_SUMMARY,
    MAX_KEYWORDS,
    MAX_SUMMARY_LENGTH,
    UNREADABLE_SUMMARY,
    build_summary,
    extract_document_keywords,
    summarize_document,
    summarize_pdf,
)

TEXT = (
    "Short. CosMx maps T cell niches in FFPE tumor tissue. "
    "The assay keeps subcellular detail across whole sections. "
    "A third sentence that should not appear in the summary."
)


def test_summary_keeps_first_two_real_sentences():
    assert build_summary(TEXT) == (
        "CosMx maps T cell niches in FFPE tumor tissue. "
        "The assay keeps subcellular detail across whole sections."
    )


def test_summary_is_truncated():
    long_text = "word " * 200 + "."

    summary = build_summary(long_text)

    assert len(summary) == MAX_SUMMARY_LENGTH
    assert summary.endswith("…")


def test_summary_of_blank_text():
    assert build_summary("   \n ") == EMPTY_SUMMARY


def test_keywords_domain_terms_first():
    keywords = extract_document_keywords("CosMx imaging of FFPE tissue. Tissue tissue.")

    assert keywords[:3] == ["ffpe", "imaging", "cosmx"]
    assert "tissue" in keywords
    assert "of" not in keywords


def test_keywords_are_capped():
    text = " ".join(f"token{i}" for i in range(40))

    assert len(extract_document_keywords(text)) == MAX_KEYWORDS


@pytest.mark.asyncio
async def test_summarize_without_model():
    summary, keywords = await summarize_document(TEXT, "niche.pdf")

    assert summary.startswith("CosMx maps T cell niches")
    assert "cosmx" in keywords


@pytest.mark.asyncio
async def test_summarize_with_model(scripted_model):
    model = scripted_model([
        '```json\n{"summary": "Maps immune niches in FFPE.", "keywords": ["Immune Niches", "ffpe"]}\n```'
    ])

    summary, keywords = await summarize_document(TEXT, "niche.pdf", model)

    assert summary == "Maps immune niches in FFPE."
    assert keywords == ["immune niches", "ffpe"]
    assert "niche.pdf" in model.calls[0]["user"]


@pytest.mark.asyncio
async def test_summarize_falls_back_when_model_answer_is_unusable(scripted_model):
    model = scripted_model(["no json here"])

    summary, keywords = await summarize_document(TEXT, "niche.pdf", model)

    assert summary == build_summary(TEXT)
    assert keywords == extract_document_keywords(TEXT)


@pytest.mark.asyncio
async def test_empty_text_is_unreadable(scripted_model):
    model = scripted_model()

    assert await summarize_document("", "scan.pdf", model) == (UNREADABLE_SUMMARY, [])
    assert model.calls == []


@pytest.mark.asyncio
async def test_unreadable_pdf():
    with patch("sequence_engine.services.asset_summarizer.PdfReader", side_effect=ValueError("bad xref")):
        summary, keywords = await summarize_pdf(Path("broken.pdf"))

    assert summary == UNREADABLE_SUMMARY
    assert keywords == []
