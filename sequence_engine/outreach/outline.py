"""Deterministic content outline built from a research brief.

The drafting model never decides the platform, the pain, the prospect
anchor or the angle. They are pulled out of the research brief here and
rewritten as direct, second-person statements before any model sees them.
"""

import re

import structlog

from sequence_engine.core.models import PLATFORMS, ContentOutline

log = structlog.get_logger()

INSTRUMENT_LINE = re.compile(r"Instrument\s*:\s*\**\s*(CosMx|GeoMx|CellScape)", re.I)

DEFAULT_ANCHOR = "their research area"
DEFAULT_PAIN = "cannot see the spatial organization of immune cells in tissue"

MAX_SECTION_ITEMS = 3

# Headings used by the research brief; a line starting with one of these
# ends the section being read.
BRIEF_HEADINGS = (
    "company",
    "website",
    "location",
    "research focus",
    "workflow or sample context",
    "current or likely tools",
    "suggested bruker instrument",
    "instrument:",
    "why this instrument",
    "outreach angle inputs",
    "likely pain",
    "recent trigger",
    "concrete spatial advantage",
)

BULLET_PREFIX = re.compile(r"^\s*(?:[-•*]+|\d+[.)])\s*")


class PlatformNotFoundError(ValueError):
    """The research brief names none of the supported platforms."""


def extract_platform(research_brief: str) -> str:
    """Return the platform named by the brief.

    An "Instrument: <name>" line wins; otherwise the first platform name
    found anywhere in the brief. Raises PlatformNotFoundError when none.
    """
    match = INSTRUMENT_LINE.search(research_brief)
    if match:
        candidate = match.group(1).lower()
        for platform in PLATFORMS:
            if platform.lower() == candidate:
                return platform

    lower = research_brief.lower()
    for platform in PLATFORMS:
        if platform.lower() in lower:
            return platform

    raise PlatformNotFoundError(
        f"No valid platform found in research brief. Must be one of: {', '.join(PLATFORMS)}"
    )


def _is_heading(line: str) -> bool:
    stripped = line.strip()
    if stripped.startswith("#"):
        return True
    if re.match(r"^\*\*[^*]+\*\*:?", stripped):
        return True
    if BULLET_PREFIX.match(stripped):
        return False
    plain = stripped.strip("*").strip().lower()
    return stripped.endswith(":") or any(plain.startswith(h) for h in BRIEF_HEADINGS)


def extract_section(research_brief: str, heading_fragment: str) -> str:
    """Return up to three items under the first heading containing the fragment."""
    lines = research_brief.split("\n")
    fragment = heading_fragment.lower()

    for idx, line in enumerate(lines):
        position = line.lower().find(fragment)
        if position < 0:
            continue

        items: list[str] = []
        remainder = line[position + len(fragment):]
        if ":" in remainder:
            inline = remainder.split(":", 1)[1].strip().strip("*").strip()
            if inline:
                items.append(inline)

        for following in lines[idx + 1:]:
            if len(items) >= MAX_SECTION_ITEMS:
                break
            if not following.strip():
                continue
            if _is_heading(following):
                break
            item = BULLET_PREFIX.sub("", following).strip()
            if item:
                items.append(item)

        return " ".join(items[:MAX_SECTION_ITEMS]).strip()

    return ""


def sanitize_field(text: str) -> str:
    """Strip third-party framing, setup phrases and hedge words."""
    if not text:
        return text
    s = text

    # "many teams struggle with X" -> "X"
    s = re.sub(
        r"\b(?:many|other|these|most)\s+(?:teams?|groups?|labs?|researchers?|scientists?)\s+"
        r"(?:often\s+|typically\s+|commonly\s+)?"
        r"(?:working\s+on|studying|developing|running|using|do(?:ing)?|face|struggle(?:\s+with)?|lack|tend(?:\s+to)?)\b",
        "", s, flags=re.I,
    )
    s = re.sub(
        r"\b(?:teams?|groups?|labs?|researchers?|scientists?)\s+"
        r"(?:often|typically|tend\s+to|commonly|usually|face|struggle(?:\s+with)?|lack)\b",
        "", s, flags=re.I,
    )

    s = re.sub(r"\bsomething\s+(?:i\s+|we\s+)?(?:hear|see)\s+(?:a\s+lot\s+|often\s+|frequently\s+)?(?:is\s+)?", "", s, flags=re.I)
    s = re.sub(r"\ba\s+(?:common\s+)?question\s+that\s+comes?\s+up\b", "", s, flags=re.I)
    s = re.sub(r"\bcomes?\s+up\s+(?:a\s+lot\s*|often\s*|frequently\s*)(?:is\s+)?", "", s, flags=re.I)

    for hedge in (r"often", r"typically", r"commonly", r"likely", r"probably", r"possibly", r"tends?\s+to"):
        s = re.sub(rf"\b{hedge}\b", "", s, flags=re.I)

    s = re.sub(r"\s{2,}", " ", s).strip()
    s = re.sub(r"\s+([,.;:])", r"\1", s)
    s = re.sub(r"^[,;:]\s*", "", s)
    s = re.sub(r"^(?:and|but|or)\s+", "", s, flags=re.I)
    return s.strip()


def _lower_first(s: str) -> str:
    return s[0].lower() + s[1:] if s else s


def _strip_bullet(text: str) -> str:
    return re.sub(r"^[-•*]\s*", "", text.strip())


def to_pain_statement(text: str) -> str:
    """Rewrite a pain blurb as a second-person statement ("You cannot ...")."""
    if not text:
        return text
    s = _strip_bullet(text)
    if not s:
        return s

    if re.match(r"^you\b", s, re.I):
        return s
    if re.match(r"^(?:can|cannot|can't)\b", s, re.I):
        return f"You {_lower_first(s)}"

    rewrites = [
        (r"^limited\s+ability\s+to\s+", "You cannot "),
        (r"^limited\s+to\s+", "You are limited to "),
        (r"^rel(?:y|ying|ies)\s+on\s+", "You rely on "),
        (r"^lack\s+of\s+", "You lack "),
        (r"^lacking\s+", "You lack "),
        (r"^unable\s+to\s+", "You cannot "),
        (r"^difficulty\s+(?:with\s+|in\s+)?", "You cannot "),
        (r"^missing\s+", "You are missing "),
    ]
    for pattern, replacement in rewrites:
        rewritten = re.sub(pattern, replacement, s, count=1, flags=re.I)
        if rewritten != s:
            return rewritten

    return f"You {_lower_first(s)}"


CAPABILITY_VERBS = (
    "resolve", "identify", "see", "map", "detect", "quantify", "profile",
    "characterize", "confirm", "track", "visualize",
)


def to_capability_statement(text: str, platform: str) -> str:
    """Rewrite an advantage blurb as "With {platform}, you can ..."."""
    if not text:
        return text
    s = _strip_bullet(text)
    if not s:
        return s

    if re.match(r"^(?:with\s+|you\s+can\b)", s, re.I):
        return s

    ability = re.match(r"^ability\s+to\s+(.+)", s, re.I)
    if ability:
        return f"With {platform}, you can {ability.group(1)}"

    verb = re.match(rf"^({'|'.join(CAPABILITY_VERBS)})\s+(.+)", s, re.I)
    if verb:
        return f"With {platform}, you can {verb.group(1).lower()} {verb.group(2)}"

    return f"With {platform}, you can {_lower_first(s)}"


def to_trigger_statement(text: str) -> str:
    """Turn hedged trigger language into a factual statement."""
    if not text:
        return text
    s = _strip_bullet(text)

    s = re.sub(r"\b(?:suggests?|signals?|indicates?)\b", "means", s, flags=re.I)
    s = re.sub(r"\b(?:likely|possibly|probably)\b", "", s, flags=re.I)

    s = re.sub(r"\s{2,}", " ", s)
    return re.sub(r"\s+([,.;:])", r"\1", s).strip()


def build_content_outline(lead_intel: str, research_brief: str) -> ContentOutline:
    """Build the fixed outline the drafting stage writes from."""
    platform = extract_platform(research_brief)

    raw_anchor = (
        extract_section(research_brief, "Research focus and disease area")
        or extract_section(research_brief, "Research focus")
        or DEFAULT_ANCHOR
    )
    raw_pain = (
        extract_section(research_brief, "Likely pain")
        or extract_section(research_brief, "pain / gap")
        or DEFAULT_PAIN
    )
    raw_trigger = (
        extract_section(research_brief, "Recent trigger")
        or extract_section(research_brief, "trigger / pressure")
    )
    raw_advantage = (
        extract_section(research_brief, "Concrete spatial advantage")
        or extract_section(research_brief, "Why this instrument")
    )

    outline = ContentOutline(
        platform=platform,
        prospect_anchor=sanitize_field(raw_anchor) or DEFAULT_ANCHOR,
        pain=to_pain_statement(sanitize_field(raw_pain)),
        trigger=to_trigger_statement(sanitize_field(raw_trigger)),
        spatial_advantage=to_capability_statement(sanitize_field(raw_advantage), platform),
    )
    log.info(
        "outline_built",
        platform=outline.platform,
        anchor=outline.prospect_anchor[:60],
        has_trigger=bool(outline.trigger),
        has_advantage=bool(outline.spatial_advantage),
    )
    return outline
