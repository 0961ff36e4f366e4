"""Catch near-duplicate late-stage emails."""

import structlog

from sequence_engine.clients.llm import LanguageModel
from sequence_engine.core.models import SequenceSections

log = structlog.get_logger()

REDUNDANCY_THRESHOLD = 0.7

REWRITE_PROMPT = """Rewrite the following outreach email so it has a distinctly different tone.
Keep the same core message, the same call to action, and the same formatting structure.
Return only the rewritten email body text, no wrapper and no explanation."""


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set Jaccard similarity of two texts."""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


async def check_redundancy(
    sections: SequenceSections,
    model: LanguageModel,
    threshold: float = REDUNDANCY_THRESHOLD,
) -> SequenceSections:
    """Rewrite email4 once if it overlaps too much with email3.

    Any model failure leaves the sections as they were.
    """
    email3 = sections.get("email3")
    email4 = sections.get("email4")
    if email3 is None or email4 is None:
        return sections

    similarity = jaccard_similarity(email3.body, email4.body)
    if similarity < threshold:
        return sections

    log.info("redundancy_detected", similarity=round(similarity, 3), threshold=threshold)

    try:
        rewritten = await model.rewrite(REWRITE_PROMPT, f"Original Email 4 body:\n{email4.body}")
    except Exception as e:
        log.error("redundancy_rewrite_error", error=str(e))
        return sections

    rewritten = (rewritten or "").strip()
    if not rewritten:
        log.warning("redundancy_rewrite_empty")
        return sections

    result = dict(sections)
    result["email4"] = email4.model_copy(update={"body": rewritten})
    return result
