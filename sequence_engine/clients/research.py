"""Research-brief client for an OpenAI-compatible chat-completions API."""

from typing import Optional

import httpx
import structlog

from sequence_engine.core.config import ResearchConfig

log = structlog.get_logger()

SYSTEM_PROMPT = """You are a biotech business development analyst supporting Bruker Spatial Biology outreach.

Turn a single spreadsheet row about a company into structured, factual notes
for a separate email-writing system. You are not writing outreach, selling,
or qualifying the account.

The row is tab-delimited with fields in this order: date added, company name,
website, location, overview, deal size, deal type, deal date, deal
counterparty, instrument focus, prior fit notes, internal fit rating, owner,
follow-up status, open opportunities, key contact role, internal comments.
Add only publicly available information. If something is unavailable, write:
Not specified.

Output these headings in this exact order, with at most 3 short bullets each:

Company
Website
Location

Research focus and disease area

Workflow or sample context

Current or likely tools / methods

Suggested Bruker instrument
Instrument: CosMx OR GeoMx OR CellScape
Why this instrument: what they can now see, validate, or resolve

Outreach angle inputs
Likely pain / gap to reference: 1-2 bullets
Recent trigger / pressure: 1-2 bullets
Concrete spatial advantage: 1-2 bullets, each a specific testable capability

Style: internal notes, plain English, neutral tone. No hype, no mention of
demos, meetings, calls or competitors. If uncertain, say "likely" and why."""


class ResearchError(RuntimeError):
    """The research brief could not be produced."""


async def research_company(
    lead_intel: str,
    config: Optional[ResearchConfig] = None,
) -> str:
    """Produce a research brief for one lead row.

    Raises ResearchError when no API key is configured, the request fails,
    or the response carries no content.
    """
    config = config or ResearchConfig()
    if not config.api_key:
        log.error("research_api_key_not_set")
        raise ResearchError("PERPLEXITY_API_KEY is not set")

    try:
        async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
            response = await client.post(
                f"{config.base_url.rstrip('/')}/chat/completions",
                headers={
                    "Authorization": f"Bearer {config.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": config.model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": lead_intel},
                    ],
                },
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        log.error("research_request_error", error=str(e))
        raise ResearchError(f"Research request failed: {e}") from e

    choices = data.get("choices") or []
    content = ""
    if choices:
        content = ((choices[0].get("message") or {}).get("content") or "").strip()
    if not content:
        raise ResearchError("No content returned by the research service")

    log.info("research_complete", chars=len(content))
    return content
