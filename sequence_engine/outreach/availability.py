"""Availability injection into sequence sections."""

import re
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field, field_validator

from sequence_engine.core.config import DEFAULT_SENDER, SenderConfig
from sequence_engine.core.models import SequenceSections
from sequence_engine.outreach.formatter import insert_before_signoff

log = structlog.get_logger()

PLACEHOLDER_PATTERNS = [
    re.compile(r"\{\{\s*availability\s*\}\}", re.I),
    re.compile(r"\[availability\]", re.I),
    re.compile(r"\{availability\}", re.I),
]

SLOT_PATTERN = re.compile(r"\[Date\]\s*[—–-]+\s*\[Time\]", re.I)

# Sections that receive the block before their sign-off when no placeholder
# is present. Email 4 is the exit email and never carries availability.
APPEND_KEYS = ("email1", "email2", "email3")

BULLET_PREFIX = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s*")


class DaySlot(BaseModel):
    date: str
    time: str

    def render(self) -> str:
        return f"{self.date.strip()} — {self.time.strip()}"


class AvailabilityInput(BaseModel):
    """Availability in any of the accepted shapes.

    window + time_ranges is the freeform pair, block is a pre-rendered
    paragraph, day_slots is structured per-day data.
    """
    window: Optional[str] = None
    time_ranges: list[str] = Field(default_factory=list)
    block: Optional[str] = None
    day_slots: list[DaySlot] = Field(default_factory=list)

    @field_validator("time_ranges", mode="before")
    @classmethod
    def split_ranges(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [line.strip() for line in value.split("\n") if line.strip()]
        return [str(v).strip() for v in value if str(v).strip()]

    def range_lines(self) -> list[str]:
        """Individual time ranges, used for positional slot filling."""
        lines = list(self.time_ranges) + [slot.render() for slot in self.day_slots]
        if not lines and self.block:
            lines = [BULLET_PREFIX.sub("", l).strip() for l in self.block.split("\n")]
            lines = [l for l in lines if l]
        return lines

    def is_empty(self) -> bool:
        return not (
            (self.window or "").strip()
            or self.time_ranges
            or (self.block or "").strip()
            or self.day_slots
        )


def render_availability_block(availability: AvailabilityInput) -> str:
    if availability.block and availability.block.strip():
        return availability.block.strip()

    window = (availability.window or "").strip()
    ranges = list(availability.time_ranges) + [s.render() for s in availability.day_slots]

    lines: list[str] = []
    if window and ranges:
        lines.append(f"I am available {window}:")
        lines.append("")
        lines.extend(f"• {r}" for r in ranges)
    elif window:
        lines.append(f"I am available {window}.")
    elif ranges:
        lines.append("I am available:")
        lines.append("")
        lines.extend(f"• {r}" for r in ranges)

    return "\n".join(lines).strip()


def has_placeholder(body: str) -> bool:
    return any(p.search(body) for p in PLACEHOLDER_PATTERNS)


def replace_placeholders(body: str, block: str) -> str:
    for pattern in PLACEHOLDER_PATTERNS:
        body = pattern.sub(lambda _m: block, body)
    return body


def fill_slots(body: str, ranges: list[str]) -> str:
    """Replace each [Date] — [Time] slot with the next range, reusing the last."""
    if not ranges:
        return body
    index = 0

    def next_range(_match: re.Match) -> str:
        nonlocal index
        value = ranges[min(index, len(ranges) - 1)]
        index += 1
        return value

    return SLOT_PATTERN.sub(next_range, body)


def already_present(body: str, block: str, ranges: list[str]) -> bool:
    if block in body:
        return True
    return bool(ranges) and all(r in body for r in ranges)


def inject_availability(
    sections: SequenceSections,
    availability: Union[AvailabilityInput, str, None],
    sender: SenderConfig = DEFAULT_SENDER,
) -> SequenceSections:
    """Put availability into each section body.

    Placeholders win over slots, slots over appending. A body that already
    contains the block is left as is, so repeated runs do not duplicate it.
    """
    if availability is None:
        return dict(sections)
    if isinstance(availability, str):
        availability = AvailabilityInput(block=availability)
    if availability.is_empty():
        return dict(sections)

    block = render_availability_block(availability)
    ranges = availability.range_lines()
    result = dict(sections)

    for key, section in sections.items():
        body = section.body
        if has_placeholder(body):
            new_body = replace_placeholders(body, block)
            strategy = "placeholder"
        elif SLOT_PATTERN.search(body):
            new_body = fill_slots(body, ranges)
            strategy = "slots"
        elif key in APPEND_KEYS and body.strip() and not already_present(body, block, ranges):
            new_body = insert_before_signoff(body, block, sender, before_last_line=True)
            strategy = "append"
        else:
            continue

        if new_body != body:
            log.debug("availability_injected", section=key, strategy=strategy)
            result[key] = section.model_copy(update={"body": new_body})

    return result
