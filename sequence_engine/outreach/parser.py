"""Parse pasted or generated sequence text into sections."""

import re
from typing import Optional

import structlog

from sequence_engine.core.models import PLATFORMS, Section, SequenceSections
from sequence_engine.outreach.formatter import match_greeting

log = structlog.get_logger()

SECTION_PATTERNS: list[tuple[str, list[re.Pattern]]] = [
    ("email1", [re.compile(r"^e-?mail\s*#?\s*1\b", re.I)]),
    ("email2", [re.compile(r"^e-?mail\s*#?\s*2\b", re.I)]),
    ("linkedinConnection", [
        re.compile(r"^linked\s*in\s*connection", re.I),
        re.compile(r"^li\s*connection", re.I),
    ]),
    ("linkedinMessage", [
        re.compile(r"^linked\s*in\s*message", re.I),
        re.compile(r"^li\s*message", re.I),
    ]),
    ("email3", [re.compile(r"^e-?mail\s*#?\s*3\b", re.I)]),
    ("email4", [re.compile(r"^e-?mail\s*#?\s*4\b", re.I)]),
]

# Headings are short labels; anything longer is prose that happens to start
# with "Email 2 ..."
MAX_HEADING_LENGTH = 60

SUBJECT_PREFIX = re.compile(r"^\*{0,2}subject\s*:\s*\*{0,2}\s*", re.I)
BODY_PREFIX = re.compile(r"^body\s*:\s*", re.I)
HEADING_MARKERS = re.compile(r"^[\s#*>_]+|[\s*_]+$")

CORPORATE_SUFFIXES = re.compile(
    r"[,\s]+(?:inc\.?|incorporated|llc|l\.l\.c\.|ltd\.?|limited|corp\.?|corporation|co\.?|gmbh|ag|plc|s\.a\.|s\.a|sa|bv|b\.v\.)$",
    re.I,
)


def match_section(line: str) -> Optional[str]:
    """Return the section key a heading line names, or None."""
    trimmed = HEADING_MARKERS.sub("", line.strip())
    if not trimmed or len(trimmed) > MAX_HEADING_LENGTH:
        return None
    for key, patterns in SECTION_PATTERNS:
        for pattern in patterns:
            if pattern.search(trimmed):
                return key
    return None


def is_greeting_line(line: str) -> bool:
    trimmed = line.strip()
    if not trimmed:
        return False
    return match_greeting(trimmed) is not None


def extract_subject_and_body(text: str) -> tuple[str, str]:
    """Split a section block into (subject, body).

    The first non-empty line is the subject unless it is a greeting, in which
    case the body starts there. An explicit "Subject:" line is stripped.
    """
    lines = text.split("\n")
    subject = ""
    body_start = 0

    for idx, line in enumerate(lines):
        trimmed = line.strip()
        if not trimmed:
            continue

        if SUBJECT_PREFIX.match(trimmed):
            subject = SUBJECT_PREFIX.sub("", trimmed).strip().strip("*").strip()
            body_start = idx + 1
            break

        if is_greeting_line(trimmed):
            body_start = idx
            break

        subject = trimmed
        body_start = idx + 1
        break
    else:
        body_start = len(lines)

    while body_start < len(lines) and not lines[body_start].strip():
        body_start += 1

    body = "\n".join(lines[body_start:]).strip()
    if BODY_PREFIX.match(body):
        body = BODY_PREFIX.sub("", body, count=1).strip()

    return subject, body


def parse_sequence(raw_input: str) -> SequenceSections:
    """Split raw text into sections keyed by heading.

    Each heading starts a block that runs to the next heading. Repeated
    headings produce separate blocks and the later block wins. Text with no
    headings becomes a single email1 section.
    """
    lines = raw_input.split("\n")
    blocks: list[tuple[str, int]] = []

    for idx, line in enumerate(lines):
        key = match_section(line)
        if key:
            blocks.append((key, idx))

    sections: SequenceSections = {}
    for i, (key, heading_idx) in enumerate(blocks):
        end = blocks[i + 1][1] if i + 1 < len(blocks) else len(lines)
        block_text = "\n".join(lines[heading_idx + 1:end]).strip()
        subject, body = extract_subject_and_body(block_text)
        if key in sections:
            log.warning("duplicate_section_heading", section=key, line=heading_idx + 1)
        sections[key] = Section(subject=subject, body=body)

    if not sections:
        subject, body = extract_subject_and_body(raw_input.strip())
        sections["email1"] = Section(subject=subject, body=body)

    return sections


def detect_instrument(text: str) -> str:
    lower = text.lower()
    if "geomx" in lower:
        return "GeoMx"
    if "cosmx" in lower:
        return "CosMx"
    if "cellscape" in lower:
        return "CellScape"
    return "GeoMx"


def resolve_instrument(text: str, override: Optional[str] = None) -> str:
    """Use an explicit platform override, otherwise detect from text."""
    if override and override.strip().lower() != "auto":
        for platform in PLATFORMS:
            if platform.lower() == override.strip().lower():
                return platform
        log.warning("unknown_instrument_override", override=override)
    return detect_instrument(text)


def derive_sequence_name(lead_intel: str) -> str:
    """Build a sequence name from a tab-delimited lead row.

    Uses field 1 (company, corporate suffix removed), the city from field 3
    and the instrument in field 12.
    """
    fields = [f.strip() for f in lead_intel.split("\t")]

    def field(index: int) -> str:
        return fields[index] if index < len(fields) else ""

    company = field(1)
    while True:
        stripped = CORPORATE_SUFFIXES.sub("", company).strip()
        if stripped == company:
            break
        company = stripped

    location = field(3)
    city = location.rsplit(",", 1)[0].strip() if "," in location else location

    instrument = field(12)

    parts = [p for p in (company, city, instrument) if p]
    return " ".join(parts) if parts else "Untitled Sequence"
