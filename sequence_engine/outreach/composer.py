"""Sequence drafting: outline, draft, rewrite passes, parse.

Stages run strictly in order:

    OutlineBuilt -> Drafted -> AnchorEnforced -> VoiceCompressed -> Suppressed -> Parsed

A failed model call at any stage ends the generation. The suppression pass
runs at most once; violations that survive it are accepted.
"""

import re
from enum import Enum

import structlog

from sequence_engine.clients.llm import LanguageModel, ModelCallError
from sequence_engine.core.config import DEFAULT_SENDER, SenderConfig
from sequence_engine.core.models import ContentOutline, SequenceSections, complete_sections
from sequence_engine.outreach.outline import build_content_outline
from sequence_engine.outreach.parser import parse_sequence

log = structlog.get_logger()


class PipelineStage(str, Enum):
    OUTLINE_BUILT = "OutlineBuilt"
    DRAFTED = "Drafted"
    ANCHOR_ENFORCED = "AnchorEnforced"
    VOICE_COMPRESSED = "VoiceCompressed"
    SUPPRESSED = "Suppressed"
    PARSED = "Parsed"


class GenerationError(RuntimeError):
    """Sequence generation failed at a model-backed stage."""

    def __init__(self, stage: PipelineStage, message: str):
        super().__init__(f"Sequence generation failed at {stage.value}: {message}")
        self.stage = stage


FORBIDDEN_PHRASES = (
    "on your radar",
    "compare notes",
    "decision point",
    "walk through",
    "walkthrough",
    "show you",
    "closing the loop",
    "something i hear",
    "i hear a lot",
    "comes up a lot",
    "a question that comes up",
)

VIOLATION_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("Demo language", re.compile(r"\bdemo(?:nstrat(?:ion|e))?\b", re.I)),
    ("Meeting duration", re.compile(r"\b\d+[-\s]?minutes?\b", re.I)),
    ("Meeting duration", re.compile(r"\bhalf[-\s]?hour\b", re.I)),
    ("Meeting duration", re.compile(r"\bquick\s+call\b", re.I)),
    ("Competitor mention", re.compile(r"\b10x\s*genomics\b", re.I)),
    ("Competitor mention", re.compile(r"\bVisium\b", re.I)),
    ("Competitor mention", re.compile(r"\bMERFISH\b", re.I)),
    ("Competitor mention", re.compile(r"\bseqFISH\b", re.I)),
    ("Competitor mention", re.compile(r"\bXenium\b", re.I)),
    ("Parentheses", re.compile(r"\([^)]{1,200}\)")),
    ("Third-party framing", re.compile(r"\b(?:many|other|most)\s+(?:teams?|groups?|labs?|researchers?)\b", re.I)),
    ("Third-party framing", re.compile(r"\b(?:teams?|groups?)\s+(?:often|tend|struggle|face|working)\b", re.I)),
    ("Setup sentence framing", re.compile(r"\bsomething\s+(?:i\s+|we\s+)?(?:hear|see)\b", re.I)),
    ("Setup sentence framing", re.compile(r"\ba\s+(?:common\s+)?question\s+that\s+comes?\s+up\b", re.I)),
    ("Setup sentence framing", re.compile(r"\bcomes?\s+up\s+(?:a\s+lot|often|frequently)\b", re.I)),
]


def detect_violations(text: str) -> list[str]:
    """Return the distinct forbidden phrases and pattern labels found in text."""
    found: list[str] = []
    lower = text.lower()

    for phrase in FORBIDDEN_PHRASES:
        if phrase in lower:
            found.append(f'Forbidden phrase: "{phrase}"')

    for label, pattern in VIOLATION_PATTERNS:
        if pattern.search(text) and label not in found:
            found.append(label)

    return found


def build_writer_prompt(sender: SenderConfig = DEFAULT_SENDER) -> str:
    return f"""You are writing short, natural outreach emails on behalf of {sender.name}.

Your job is to phrase ideas clearly and conversationally. Structure, sequencing
and constraints are decided elsewhere.

- Do not invent facts or introduce new ideas.
- Do not add framing sentences or contextualize the problem.
- Write the statements you are given as plainly as possible.
- Short sentences, 8th-grade reading level, peer scientist rather than vendor.

Assume the content outline you receive is correct."""


def build_user_message(outline: ContentOutline, sender: SenderConfig = DEFAULT_SENDER) -> str:
    """Serialize the outline into the drafting request."""
    platform = outline.platform
    escalation = outline.trigger or outline.spatial_advantage or outline.pain
    capability = outline.spatial_advantage or outline.pain

    return f"""Write a 6-part outreach sequence from this fixed content outline.

Output these sections in this order, each under its own header line:
Email 1
Email 2
LinkedIn Connection Request
LinkedIn Message
Email 3
Email 4

FIXED CONSTRAINTS:
- Sender: {sender.name}, {sender.title}, {sender.company}
- Platform: {platform}. Mention no other platform.
- Every email opens with its own paragraph: Hi {{{{first_name}}}},
- Every email has a subject line formatted as: Subject: <text>
- Emails 1, 2 and 3 contain the placeholder {{{{availability}}}} on its own line. Email 4 does not.
- The meeting ask is in person while {sender.first_name} is in the area. No dates or times.

EMAIL 1:
- Introduce {sender.first_name} briefly.
- State this pain directly: {outline.pain}
- The pain belongs to this prospect's work: {outline.prospect_anchor}
- Reference {platform} only as the answer to that pain.
- Close with the in-person ask, then {{{{availability}}}}.

EMAIL 2:
- Subject takes a different angle from Email 1.
- Acknowledge they may have missed the first email.
- State this angle directly: {escalation}
- Do not re-explain {platform}.
- Close with {{{{availability}}}}.

LINKEDIN CONNECTION REQUEST:
- One neutral sentence. No selling.

LINKEDIN MESSAGE:
- Mention the email outreach. Short, no technical detail, no meeting ask.

EMAIL 3:
- Acknowledge the lack of response without apology.
- Introduce this one capability: {capability}
- Close with the in-person ask, then {{{{availability}}}}.

EMAIL 4:
- No new information, no selling, no meeting ask, no {{{{availability}}}}.
- Timing may not be right; {sender.first_name} will reconnect later."""


PROSPECT_ANCHOR_PROMPT = """Rewrite Email 1 and Email 2 so the pain maps to the prospect's research context (disease, modality, or translational goal).

If the pain could apply to any lab, anchor it to the provided prospect context.
Rewrite any setup sentence that introduces the pain indirectly ("Something I hear a lot...", "Many teams face...") as a direct statement to the reader using "you".

Do not add facts. Keep every other section unchanged. Output the full sequence."""


def build_voice_prompt(sender: SenderConfig = DEFAULT_SENDER) -> str:
    return f"""Rewrite the text so it sounds like {sender.name} wrote it. This is a voice compression pass only.

- Prefer questions over statements.
- Speak to the reader's work, never to other teams or groups.
- Simple, direct language. No marketing language, metaphors or sales idioms.
- One concrete fact per email, then stop.

Preserve meaning, structure, headers, subject lines, platform, and placeholders.
Do not add information. Output only the rewritten text."""


_FORBIDDEN_LIST = ", ".join(f'"{phrase}"' for phrase in FORBIDDEN_PHRASES)

SUPPRESSION_PROMPT = f"""Perform a targeted cleanup pass on this outreach text. Fix only the violations below.

- Forbidden phrases: {_FORBIDDEN_LIST}
- Demo language: replace with "talk through" or "discuss".
- Meeting durations ("30 minutes", "quick call", "half hour"): remove.
- Competitor names: remove.
- Parentheses: remove and fold essential meaning into the sentence.
- Third-party or setup framing ("many teams", "other groups", "something I hear"): address the reader as "you".

Preserve section headers, subject lines, placeholders ({{{{first_name}}}}, {{{{availability}}}}), platform names and order.
Output only the cleaned text."""


async def _run_stage(stage: PipelineStage, call) -> str:
    try:
        content = await call
    except ModelCallError as e:
        log.error("stage_failed", stage=stage.value, error=str(e))
        raise GenerationError(stage, str(e)) from e
    if not content or not content.strip():
        raise GenerationError(stage, "no content returned")
    log.info("stage_complete", stage=stage.value, chars=len(content))
    return content


async def suppress_violations(model: LanguageModel, text: str) -> str:
    """Run a single cleanup rewrite when violations are present."""
    violations = detect_violations(text)
    if not violations:
        log.info("suppression_skipped")
        return text

    log.warning("violations_detected", violations=violations)
    cleaned = await _run_stage(PipelineStage.SUPPRESSED, model.rewrite(SUPPRESSION_PROMPT, text))

    remaining = detect_violations(cleaned)
    if remaining:
        # Single pass only; leftovers are accepted
        log.warning("violations_remaining", violations=remaining)
    return cleaned


async def generate_sequence(
    lead_intel: str,
    research_brief: str,
    model: LanguageModel,
    sender: SenderConfig = DEFAULT_SENDER,
) -> SequenceSections:
    """Draft a full six-part sequence.

    Raises PlatformNotFoundError when the brief names no platform and
    GenerationError when any model stage fails.
    """
    outline = build_content_outline(lead_intel, research_brief)
    log.info("stage_complete", stage=PipelineStage.OUTLINE_BUILT.value, platform=outline.platform)

    draft = await _run_stage(
        PipelineStage.DRAFTED,
        model.draft(build_writer_prompt(sender), build_user_message(outline, sender)),
    )

    anchored = await _run_stage(
        PipelineStage.ANCHOR_ENFORCED,
        model.rewrite(PROSPECT_ANCHOR_PROMPT, f"Prospect context: {outline.prospect_anchor}\n\n{draft}"),
    )

    compressed = await _run_stage(
        PipelineStage.VOICE_COMPRESSED,
        model.rewrite(build_voice_prompt(sender), anchored),
    )

    final = await suppress_violations(model, compressed)

    sections = complete_sections(parse_sequence(final))
    log.info(
        "stage_complete",
        stage=PipelineStage.PARSED.value,
        subjects={key: section.subject for key, section in sections.items()},
    )
    return sections
