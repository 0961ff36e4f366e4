"""Score knowledge-base assets against an email and pick attachments."""

import json
import re
from typing import Iterable, Optional

import structlog

from sequence_engine.clients.llm import LanguageModel, parse_json_response
from sequence_engine.core.models import Asset, SelectedAssets

log = structlog.get_logger()

MAX_ATTACHMENT_SIZE = 5 * 1024 * 1024
MAX_DOCUMENTS = 2

DISEASE_TERMS = (
    "cancer", "tumor", "oncology", "immuno", "fibrosis", "inflammation",
    "neurodegen", "alzheimer", "parkinson",
)
BIO_TECHNIQUE_TERMS = (
    "transcriptom", "proteom", "spatial", "single-cell", "single cell",
    "multiplex", "morpholog", "rna", "protein",
)
TECH_SPEC_TERMS = (
    "resolution", "sensitivity", "throughput", "plex", "whole slide",
    "subcellular", "high-plex", "fov",
)

# (terms, points) - each category scores at most once
SCORE_CATEGORIES = (
    (DISEASE_TERMS, 2),
    (BIO_TECHNIQUE_TERMS, 2),
    (TECH_SPEC_TERMS, 1),
)

INSTRUMENT_MATCH_POINTS = 3
GENERIC_PENALTY = 5
GENERIC_INSTRUMENTS = ("MultiPlatform", "General")

UNAVAILABLE_SUMMARIES = ("summary unavailable", "pdf summary unavailable")
SUMMARY_LEAD = re.compile(
    r"^(?:this|the)\s+(?:document|study|paper|poster|brochure|flyer|white\s+paper|(?:app|application)\s+note)\s+"
    r"(?:shows|describes|outlines|demonstrates|presents|covers)\s+",
    re.I,
)

SELECTOR_PROMPT = """You select attachments for a scientific outreach email.

Given the email body, the detected instrument and pre-scored candidate assets:
- pick exactly one image if any image candidate exists
- pick one or two documents whose combined size is under the limit
- write one attachment reference sentence derived from the chosen documents'
  summaries, formatted "I've also attached <description> which outlines <value>."

Only choose file names from the candidate list. Return only JSON:
{"image": "file.png", "documents": ["file.pdf"], "attachment_reference": "..."}"""


def score_asset(asset: Asset, email_body: str, instrument: str) -> int:
    """Relevance of an asset to an email body and instrument."""
    score = 0
    body = email_body.lower()
    summary = (asset.summary or "").lower()
    keywords = [k.lower() for k in asset.keywords]

    if asset.instrument == instrument:
        score += INSTRUMENT_MATCH_POINTS

    for terms, points in SCORE_CATEGORIES:
        for term in terms:
            if term in body and (term in summary or any(term in k for k in keywords)):
                score += points
                break

    # Generic assets stay eligible but lose to instrument-specific ones
    if asset.instrument in GENERIC_INSTRUMENTS:
        score -= GENERIC_PENALTY

    return score


def rank_assets(assets: Iterable[Asset], email_body: str, instrument: str) -> list[tuple[Asset, int]]:
    scored = [(asset, score_asset(asset, email_body, instrument)) for asset in assets]
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


def pick_documents(
    documents: Iterable[Asset],
    max_bytes: int = MAX_ATTACHMENT_SIZE,
    max_documents: int = MAX_DOCUMENTS,
) -> list[Asset]:
    """Greedily take documents in order while the combined size fits.

    A document that would overflow the budget is skipped, not replaced.
    """
    chosen: list[Asset] = []
    total = 0
    for document in documents:
        if len(chosen) >= max_documents:
            break
        if document.size > max_bytes:
            continue
        if total + document.size <= max_bytes:
            chosen.append(document)
            total += document.size
    return chosen


def _summary_phrase(document: Asset, instrument: str) -> str:
    summary = (document.summary or "").strip()
    if not summary or summary.lower().startswith(UNAVAILABLE_SUMMARIES):
        return f"how {instrument} fits into your workflow"
    first = re.split(r"(?<=[.!?])\s+", summary, maxsplit=1)[0]
    first = SUMMARY_LEAD.sub("", first).rstrip(".…").strip()
    if not first:
        return f"how {instrument} fits into your workflow"
    word = first.split()[0]
    # Keep acronyms and product names as written
    if len(word) > 1 and word[1:].islower():
        first = first[0].lower() + first[1:]
    return first


def build_attachment_reference(documents: list[Asset], instrument: str = "GeoMx") -> str:
    """One sentence introducing the attached documents."""
    if not documents:
        return ""
    lead = "a relevant document" if len(documents) == 1 else "a couple of relevant documents"
    return f"I've also attached {lead} which outlines {_summary_phrase(documents[0], instrument)}."


def _candidates(assets: list[Asset], exclude_file_names: Iterable[str]) -> list[Asset]:
    excluded = set(exclude_file_names or ())
    return [asset for asset in assets if asset.file_name not in excluded]


def select_assets_deterministic(
    email_body: str,
    assets: list[Asset],
    instrument: str = "GeoMx",
    exclude_file_names: Iterable[str] = (),
    max_bytes: int = MAX_ATTACHMENT_SIZE,
    max_documents: int = MAX_DOCUMENTS,
) -> SelectedAssets:
    """Best image plus up to two documents within the size budget."""
    candidates = _candidates(assets, exclude_file_names)
    images = rank_assets([a for a in candidates if a.type == "Image"], email_body, instrument)
    documents = rank_assets([a for a in candidates if a.type == "Document"], email_body, instrument)

    image = images[0][0].file_name if images else ""
    chosen = pick_documents((doc for doc, _ in documents), max_bytes, max_documents)
    sentence = build_attachment_reference(chosen, instrument)

    return SelectedAssets(
        image=image,
        documents=[doc.file_name for doc in chosen],
        justification_sentence=sentence,
        attachment_reference=sentence,
    )


def _candidate_metadata(scored: list[tuple[Asset, int]]) -> list[dict]:
    return [
        {
            "file_name": asset.file_name,
            "instrument": asset.instrument,
            "type": asset.type,
            "size": asset.size,
            "summary": asset.summary or "No summary available",
            "keywords": asset.keywords,
            "score": score,
        }
        for asset, score in scored
    ]


async def select_assets(
    email_body: str,
    assets: list[Asset],
    instrument: str = "GeoMx",
    exclude_file_names: Iterable[str] = (),
    model: Optional[LanguageModel] = None,
    max_bytes: int = MAX_ATTACHMENT_SIZE,
    max_documents: int = MAX_DOCUMENTS,
) -> SelectedAssets:
    """Select attachments, optionally letting a model make the final pick.

    The model only chooses among pre-scored candidates. Any answer naming a
    file outside the candidates, breaking the size budget, or failing to
    parse falls back to the deterministic selection.
    """
    fallback = select_assets_deterministic(
        email_body, assets, instrument, exclude_file_names, max_bytes, max_documents
    )
    if model is None:
        return fallback

    candidates = _candidates(assets, exclude_file_names)
    images = rank_assets([a for a in candidates if a.type == "Image"], email_body, instrument)[:3]
    documents = [
        (doc, score)
        for doc, score in rank_assets([a for a in candidates if a.type == "Document"], email_body, instrument)
        if doc.size <= max_bytes
    ][:4]
    if not images and not documents:
        return fallback

    user = (
        f"Detected instrument: {instrument}\n"
        f"Attachment size limit (bytes): {max_bytes}\n\n"
        f"Email body:\n{email_body}\n\n"
        f"Pre-scored assets:\n{json.dumps(_candidate_metadata(images + documents), indent=2)}"
    )

    try:
        response = await model.complete(SELECTOR_PROMPT, user)
        parsed = parse_json_response(response)
        if not isinstance(parsed, dict):
            raise ValueError("selection is not a JSON object")
    except Exception as e:
        log.warning("asset_selection_model_fallback", error=str(e))
        return fallback

    image_names = {asset.file_name for asset, _ in images}
    proposed = parsed.get("image")
    image = proposed if isinstance(proposed, str) and proposed in image_names else fallback.image

    by_name = {doc.file_name: doc for doc, _ in documents}
    requested = []
    for name in parsed.get("documents") or []:
        if isinstance(name, str) and name in by_name and by_name[name] not in requested:
            requested.append(by_name[name])
    chosen = pick_documents(requested, max_bytes, max_documents)
    if not chosen or len(chosen) != len(requested):
        if requested:
            log.warning("asset_selection_model_invalid_documents", requested=[d.file_name for d in requested])
        return fallback.model_copy(update={"image": image})

    reference = (parsed.get("attachment_reference") or "").strip()
    if not reference:
        reference = build_attachment_reference(chosen, instrument)

    return SelectedAssets(
        image=image,
        documents=[doc.file_name for doc in chosen],
        justification_sentence=reference,
        attachment_reference=reference,
    )
