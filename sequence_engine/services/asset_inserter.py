"""Place selected assets into an email body."""

import re
from typing import Optional

import structlog

from sequence_engine.core.config import DEFAULT_SENDER, SenderConfig
from sequence_engine.core.models import PLATFORMS, SelectedAssets, SequenceSections
from sequence_engine.outreach.formatter import insert_before_signoff, match_greeting

log = structlog.get_logger()

IMAGE_MARKER = "[Insert Image: {file_name}]"
IMAGE_MARKER_PATTERN = re.compile(r"\[Insert Image:[^\]]*\]", re.I)

FALLBACK_OFFSET = 2

INTRO_PHRASES = (
    "my name is",
    "account manager",
    "regional manager",
    "nice to meet",
    "nice to e-meet",
    "i work with",
)
INTRO_START = re.compile(r"^(?:hi|hello|hey|dear|greetings)\b", re.I)

PAIN_MARKERS = (
    "challeng", "struggl", "difficult", "hard to", "bottleneck", "limited",
    "limitation", "lose ", "losing", "lost", "missing", "can't", "cannot",
    "gap", "trade-off", "tradeoff", "problem", "pain",
)
SOLUTION_MARKERS = ("spatial", "platform", "solution", "enable", "profil")


def is_intro_paragraph(text: str, sender: SenderConfig = DEFAULT_SENDER) -> bool:
    lower = text.lower()
    if INTRO_START.match(text.strip()) or match_greeting(text):
        return True
    if sender.name and sender.name.lower() in lower:
        return True
    return any(phrase in lower for phrase in INTRO_PHRASES)


def mentions_instrument(text: str) -> bool:
    lower = text.lower()
    return any(platform.lower() in lower for platform in PLATFORMS)


def is_pain_paragraph(text: str) -> bool:
    lower = text.lower()
    return any(marker in lower for marker in PAIN_MARKERS)


def is_solution_paragraph(text: str) -> bool:
    if mentions_instrument(text):
        return True
    lower = text.lower()
    return any(marker in lower for marker in SOLUTION_MARKERS)


def find_image_index(paragraphs: list[str], sender: SenderConfig = DEFAULT_SENDER) -> int:
    """Paragraph index at which the image marker goes.

    Pain paragraph with a solution paragraph after it: after the solution.
    Pain without a later solution: after the pain. No pain: after the first
    paragraph naming an instrument. Otherwise a small fixed offset.
    """
    candidates = [
        i for i, p in enumerate(paragraphs)
        if p.strip() and not is_intro_paragraph(p, sender)
    ]

    pain = next((i for i in candidates if is_pain_paragraph(paragraphs[i])), None)
    if pain is not None:
        solution = next(
            (i for i in candidates if i > pain and is_solution_paragraph(paragraphs[i])),
            None,
        )
        return (solution if solution is not None else pain) + 1

    instrument = next((i for i in candidates if mentions_instrument(paragraphs[i])), None)
    if instrument is not None:
        return instrument + 1

    return min(FALLBACK_OFFSET, len(paragraphs))


def insert_image_marker(body: str, file_name: str, sender: SenderConfig = DEFAULT_SENDER) -> str:
    if IMAGE_MARKER_PATTERN.search(body):
        return body
    paragraphs = body.split("\n\n")
    index = find_image_index(paragraphs, sender)
    paragraphs.insert(index, IMAGE_MARKER.format(file_name=file_name))
    return "\n\n".join(paragraphs)


def insert_attachment_reference(body: str, reference: str, sender: SenderConfig = DEFAULT_SENDER) -> str:
    if not reference or reference in body:
        return body
    return insert_before_signoff(body, reference, sender)


def insert_assets_into_email(
    sections: SequenceSections,
    selected: Optional[SelectedAssets],
    key: str = "email1",
    sender: SenderConfig = DEFAULT_SENDER,
) -> SequenceSections:
    """Add the image marker and attachment reference to one email."""
    section = sections.get(key)
    if selected is None or section is None or not section.body.strip():
        return sections

    body = section.body
    if selected.image:
        body = insert_image_marker(body, selected.image, sender)
    if selected.documents:
        reference = selected.attachment_reference or selected.justification_sentence
        body = insert_attachment_reference(body, reference, sender)

    if body == section.body:
        return sections

    log.debug("assets_inserted", section=key, image=selected.image, documents=selected.documents)
    result = dict(sections)
    result[key] = section.model_copy(update={"body": body})
    return result
