"""Greeting and sender-introduction rules for sequence sections.

Drafts and pasted sequences arrive with whatever greeting the author (or the
model) chose. This pass removes any greeting and self-introduction found at
the top of a section and puts back the canonical preamble:

    Hello {{first_name}},
    My name is <sender>, and I'm the <title> at <company>.

LinkedIn touches get a single "Hi {{first_name}}," line instead. Text that
followed a stripped greeting on the same line is kept: on its own line for
emails, on the greeting line for LinkedIn.
"""

import re
from typing import Optional

from sequence_engine.core.config import DEFAULT_SENDER, SenderConfig
from sequence_engine.core.models import EMAIL_KEYS, LINKEDIN_KEYS, SequenceSections

EMAIL_GREETING = "Hello {{first_name}},"
LINKEDIN_GREETING = "Hi {{first_name}},"

_SEPARATOR = r"\s*(?:[,!:;—–-]+|$)"
# Punctuation after a name; a dash only counts with a space before it so
# hyphenated names survive
_NAME_SEPARATOR = r"\s*(?:[,!:;]+|\s[—–-]+)"
_NAME_TOKEN = r"(?:(?:dr|mr|mrs|ms|mx|prof)\.|[^\s,!:;.?]+)"
_NAME = rf"{_NAME_TOKEN}(?:\s+{_NAME_TOKEN}){{0,4}}"
_SHORT_NAME = rf"{_NAME_TOKEN}(?:\s+{_NAME_TOKEN})?"
_PERIOD = r"(?:morning|afternoon|evening|day)"

# Shared by the parser (greeting vs subject line) and the intro rules
GREETING_PATTERNS = [
    re.compile(rf"^(?:hi|hello|hey|dear|greetings)\s+\{{\{{\s*first_name\s*\}}\}}{_SEPARATOR}", re.I),
    re.compile(rf"^(?:hi|hello|hey)\s+there\b{_SEPARATOR}?", re.I),
    re.compile(r"^(?:hi|hello|hey)\s*(?:[,!:]+|$)", re.I),
    re.compile(rf"^good\s+{_PERIOD}\b(?:\s+{_NAME})?{_NAME_SEPARATOR}", re.I),
    re.compile(rf"^good\s+{_PERIOD}\b(?:\s+{_SHORT_NAME})?\s*$", re.I),
    re.compile(rf"^good\s+{_PERIOD}\b", re.I),
    re.compile(rf"^greetings\b{_SEPARATOR}?", re.I),
    re.compile(rf"^(?:hi|hello|hey|dear)\s+{_NAME}{_NAME_SEPARATOR}", re.I),
    re.compile(rf"^(?:hi|hello|hey|dear)\s+{_SHORT_NAME}\s*$", re.I),
    re.compile(r"^dear\b[^,\n]*,?", re.I),
]

BLANK_RUNS = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def match_greeting(line: str) -> Optional[re.Match]:
    """Match a greeting at the start of a line."""
    trimmed = line.strip()
    if not trimmed:
        return None
    for pattern in GREETING_PATTERNS:
        match = pattern.match(trimmed)
        if match:
            return match
    return None


def intro_patterns(sender: SenderConfig) -> list[re.Pattern]:
    name = re.escape(sender.name)
    first = re.escape(sender.first_name)
    title = re.escape(sender.title)
    patterns = [
        re.compile(rf"\bmy name is {name}\b", re.I),
        re.compile(rf"\b(?:i'?m|i am|this is) {name}\b", re.I),
        re.compile(rf"^{first}\s+here\b", re.I),
    ]
    if sender.title:
        patterns.append(re.compile(rf"\b(?:i'?m|i am) (?:the |a |an )?{title}\b", re.I))
    return patterns


def strip_intro_sentences(line: str, patterns: list[re.Pattern]) -> str:
    """Drop the sentences of a line that introduce the sender."""
    sentences = SENTENCE_SPLIT.split(line.strip())
    kept = [s for s in sentences if not any(p.search(s) for p in patterns)]
    return " ".join(kept).strip()


def strip_greetings_and_intro(body: str, sender: SenderConfig = DEFAULT_SENDER) -> tuple[str, str]:
    """Remove the leading greeting and self-introduction from a body.

    Returns (cleaned_body, salvaged) where salvaged is any text that followed
    the greeting on the same line.
    """
    patterns = intro_patterns(sender)
    lines = body.split("\n")
    kept: list[str] = []
    salvaged = ""
    found_content = False

    for line in lines:
        trimmed = line.strip()

        if not found_content:
            if not trimmed:
                continue
            greeting = match_greeting(trimmed)
            if greeting:
                remainder = trimmed[greeting.end():].strip()
                remainder = strip_intro_sentences(remainder, patterns) if remainder else ""
                if remainder and not salvaged:
                    salvaged = remainder
                continue
            if any(p.search(trimmed) for p in patterns):
                remainder = strip_intro_sentences(trimmed, patterns)
                if not remainder:
                    continue
                kept.append(remainder)
                found_content = True
                continue
            found_content = True
            kept.append(line)
            continue

        if trimmed and any(p.search(trimmed) for p in patterns):
            remainder = strip_intro_sentences(trimmed, patterns)
            if remainder:
                kept.append(remainder)
            continue

        # A bare salutation repeated mid-body
        greeting = match_greeting(trimmed)
        if greeting and not trimmed[greeting.end():].strip() and trimmed.endswith(","):
            continue

        kept.append(line)

    return "\n".join(kept).strip(), salvaged


def collapse_blank_lines(text: str) -> str:
    return BLANK_RUNS.sub("\n\n", text)


def email_preamble(sender: SenderConfig = DEFAULT_SENDER) -> str:
    intro = f"My name is {sender.name}, and I'm the {sender.title} at {sender.company}."
    return f"{EMAIL_GREETING}\n{intro}"


def enforce_intro_rules(
    sections: SequenceSections,
    sender: SenderConfig = DEFAULT_SENDER,
) -> SequenceSections:
    """Re-impose the canonical greeting and sender preamble on every section."""
    result = dict(sections)

    for key in EMAIL_KEYS:
        section = result.get(key)
        if section is None or not section.body.strip():
            continue
        cleaned, salvaged = strip_greetings_and_intro(section.body, sender)
        parts = [email_preamble(sender)]
        if salvaged:
            parts.append(salvaged)
        if cleaned:
            parts.append(cleaned)
        body = "\n\n".join(parts)
        result[key] = section.model_copy(update={"body": collapse_blank_lines(body)})

    for key in LINKEDIN_KEYS:
        section = result.get(key)
        if section is None or not section.body.strip():
            continue
        cleaned, salvaged = strip_greetings_and_intro(section.body, sender)
        greeting = f"{LINKEDIN_GREETING} {salvaged}" if salvaged else LINKEDIN_GREETING
        body = f"{greeting}\n\n{cleaned}" if cleaned else greeting
        result[key] = section.model_copy(update={"body": collapse_blank_lines(body)})

    return result


SIGNOFF_PHRASES = (
    "best regards",
    "warm regards",
    "kind regards",
    "regards,",
    "sincerely",
    "thank you",
    "thanks",
    "looking forward",
    "let me know",
    "cheers",
    "best,",
)
MAX_SIGNOFF_LENGTH = 40


def is_signoff_line(line: str, sender: SenderConfig = DEFAULT_SENDER) -> bool:
    """A short closing line such as "Best," or the sender's name.

    Sentences that merely open with a closing phrase ("Thanks to your
    Series B, ...", "Let me know if ...") are body text.
    """
    lower = line.strip().lower()
    if not lower:
        return False
    if lower in (sender.first_name.lower(), sender.name.lower()):
        return True
    if len(lower) > MAX_SIGNOFF_LENGTH or lower.endswith((".", "?")):
        return False
    return lower.startswith(SIGNOFF_PHRASES)


def find_signoff_index(lines: list[str], sender: SenderConfig = DEFAULT_SENDER) -> Optional[int]:
    """Topmost line of the closing block, scanning from the bottom."""
    index = None
    for i in range(len(lines) - 1, -1, -1):
        if not lines[i].strip():
            continue
        if is_signoff_line(lines[i], sender):
            index = i
        elif index is not None:
            break
    return index


def insert_before_signoff(
    body: str,
    block: str,
    sender: SenderConfig = DEFAULT_SENDER,
    before_last_line: bool = False,
) -> str:
    """Insert a paragraph before the sign-off block.

    Without a recognizable sign-off the paragraph goes at the end, or before
    the final non-empty line when before_last_line is set.
    """
    lines = body.rstrip().split("\n")
    index = find_signoff_index(lines, sender)
    if index is None and before_last_line:
        index = max(i for i, line in enumerate(lines) if line.strip())
    if index is None:
        return f"{body.rstrip()}\n\n{block}"

    before = lines[:index]
    while before and not before[-1].strip():
        before.pop()
    return "\n".join(before + ([""] if before else []) + [block, ""] + lines[index:])
