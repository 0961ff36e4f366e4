"""Hyperlink the first mention of each product term in email bodies."""

import re
from typing import Literal

from sequence_engine.core.models import LINKEDIN_KEYS, SequenceSections

LinkFormat = Literal["html", "text"]

GEOMX_URL = "https://nanostring.com/products/geomx-digital-spatial-profiler/geomx-dsp-overview/"
COSMX_URL = "https://nanostring.com/products/cosmx-spatial-molecular-imager/single-cell-imaging-overview/"

LINK_MAP: dict[str, str] = {
    "GeoMx Digital Spatial Profiler": GEOMX_URL,
    "GeoMx": GEOMX_URL,
    "CosMx Spatial Molecular Imager": COSMX_URL,
    "CosMx": COSMX_URL,
    "CellScape": "https://brukerspatialbiology.com/cellscape/",
    "Bruker Spatial Biology": "https://brukerspatialbiology.com/",
}

# Text already carrying link markup is never linked again
EXISTING_LINK_PATTERNS = [
    re.compile(r"<a\s[^>]*>.*?</a>", re.I | re.S),
    re.compile(r"\[[^\]\n]+\]\([^)\s]+\)"),
    re.compile(r"https?://[^\s<>()\"']+"),
]

TEXT_LINK_SUFFIX = re.compile(r"\s*\(\s*https?://", re.I)


def _existing_ranges(text: str) -> list[tuple[int, int]]:
    ranges = []
    for pattern in EXISTING_LINK_PATTERNS:
        ranges.extend(m.span() for m in pattern.finditer(text))
    return ranges


def _overlaps(start: int, end: int, ranges: list[tuple[int, int]]) -> bool:
    return any(start < r_end and end > r_start for r_start, r_end in ranges)


def _term_pattern(term: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(term)}(?:™|\b)", re.I)


def inject_links(
    body: str,
    link_format: LinkFormat = "html",
    link_map: dict[str, str] = LINK_MAP,
) -> str:
    """Link the first mention of each term, longest terms first."""
    result = body
    inserted: list[tuple[int, int]] = []

    for term, url in sorted(link_map.items(), key=lambda item: len(item[0]), reverse=True):
        match = _term_pattern(term).search(result)
        if not match:
            continue

        start, end = match.span()
        if _overlaps(start, end, inserted + _existing_ranges(result)):
            continue
        if TEXT_LINK_SUFFIX.match(result, end):
            continue

        text = match.group(0)
        if link_format == "html":
            replacement = f'<a href="{url}">{text}</a>'
        else:
            replacement = f"{text} ({url})"

        result = result[:start] + replacement + result[end:]

        delta = len(replacement) - (end - start)
        inserted = [
            (s + delta, e + delta) if s >= end else (s, e)
            for s, e in inserted
        ]
        inserted.append((start, start + len(replacement)))

    return result


def inject_links_in_sections(
    sections: SequenceSections,
    link_format: LinkFormat = "html",
    link_map: dict[str, str] = LINK_MAP,
) -> SequenceSections:
    """Inject links into every non-LinkedIn section present."""
    result = dict(sections)
    for key, section in sections.items():
        if key in LINKEDIN_KEYS:
            continue
        body = inject_links(section.body, link_format, link_map)
        if body != section.body:
            result[key] = section.model_copy(update={"body": body})
    return result
