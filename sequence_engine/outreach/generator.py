"""End-to-end sequence generation and paste assembly.

Both entry points finish with the same deterministic pass:

    intro rules -> links -> availability -> instrument -> keyword filter
    -> email1 assets -> email2 assets (excluding email1's files)
"""

from typing import Awaitable, Callable, Optional, Union

import structlog
from pydantic import BaseModel, Field

from sequence_engine.clients.llm import LanguageModel
from sequence_engine.clients.research import research_company
from sequence_engine.core.config import Settings
from sequence_engine.core.models import (
    Asset,
    SelectedAssets,
    Sequence,
    SequenceSections,
    complete_sections,
)
from sequence_engine.outreach.availability import AvailabilityInput, inject_availability
from sequence_engine.outreach.composer import generate_sequence
from sequence_engine.outreach.formatter import enforce_intro_rules
from sequence_engine.outreach.links import inject_links_in_sections
from sequence_engine.outreach.parser import derive_sequence_name, parse_sequence, resolve_instrument
from sequence_engine.outreach.redundancy import check_redundancy
from sequence_engine.services.asset_inserter import insert_assets_into_email
from sequence_engine.services.asset_selector import select_assets
from sequence_engine.services.keywords import extract_keywords, filter_assets_by_keywords

log = structlog.get_logger()

MAX_INPUT_CHARS = 50_000

Availability = Union[AvailabilityInput, str, None]
ResearchFn = Callable[[str], Awaitable[str]]


class GenerationRequest(BaseModel):
    lead_intel: str = Field(min_length=1, max_length=MAX_INPUT_CHARS)
    research_brief: Optional[str] = None
    name: Optional[str] = None
    availability: Union[AvailabilityInput, str, None] = None
    instrument_override: Optional[str] = None


class PasteRequest(BaseModel):
    raw_input: str = Field(min_length=1, max_length=MAX_INPUT_CHARS)
    name: Optional[str] = None
    availability: Union[AvailabilityInput, str, None] = None
    instrument_override: Optional[str] = None


class GenerationResult(BaseModel):
    name: str
    instrument: str
    raw_input: str
    research_brief: Optional[str] = None
    availability: Optional[str] = None
    sections: SequenceSections
    selected_assets: Optional[SelectedAssets] = None
    selected_assets_email2: Optional[SelectedAssets] = None

    def to_sequence(self) -> Sequence:
        return Sequence(
            name=self.name,
            instrument=self.instrument,
            raw_input=self.raw_input,
            research_brief=self.research_brief,
            availability=self.availability,
            sections=self.sections,
            selected_assets=self.selected_assets,
            selected_assets_email2=self.selected_assets_email2,
        )


def _availability_text(availability: Availability) -> Optional[str]:
    if availability is None:
        return None
    if isinstance(availability, str):
        return availability.strip() or None
    if availability.is_empty():
        return None
    return availability.model_dump_json(exclude_defaults=True)


class SequenceGenerator:
    """Runs a sequence from lead intel or pasted text to its final shape."""

    def __init__(
        self,
        model: LanguageModel,
        settings: Optional[Settings] = None,
        research: Optional[ResearchFn] = None,
        asset_model: Optional[LanguageModel] = None,
    ):
        self.model = model
        self.settings = settings or Settings()
        self.research = research or self._default_research
        self.asset_model = asset_model

    async def _default_research(self, lead_intel: str) -> str:
        return await research_company(lead_intel, self.settings.research)

    async def generate(self, request: GenerationRequest, assets: list[Asset]) -> GenerationResult:
        """Draft a new sequence. Research and drafting failures propagate."""
        brief = request.research_brief
        if not (brief or "").strip():
            log.info("research_requested", chars=len(request.lead_intel))
            brief = await self.research(request.lead_intel)

        sections = await generate_sequence(request.lead_intel, brief, self.model, self.settings.sender)
        sections = await check_redundancy(sections, self.model, self.settings.pipeline.redundancy_threshold)

        return await self._finalize(
            sections,
            assets,
            raw_input=request.lead_intel,
            keyword_source=request.lead_intel,
            research_brief=brief,
            availability=request.availability,
            instrument_override=request.instrument_override,
            name=request.name or derive_sequence_name(request.lead_intel),
        )

    async def assemble_from_paste(
        self,
        raw_input: str,
        assets: list[Asset],
        availability: Availability = None,
        instrument_override: Optional[str] = None,
        name: Optional[str] = None,
    ) -> GenerationResult:
        """Format an already written sequence without calling the drafting model."""
        request = PasteRequest(
            raw_input=raw_input,
            name=name,
            availability=availability,
            instrument_override=instrument_override,
        )
        sections = complete_sections(parse_sequence(request.raw_input))

        return await self._finalize(
            sections,
            assets,
            raw_input=request.raw_input,
            keyword_source=request.raw_input,
            research_brief=None,
            availability=request.availability,
            instrument_override=request.instrument_override,
            name=request.name or "Untitled Sequence",
        )

    async def _finalize(
        self,
        sections: SequenceSections,
        assets: list[Asset],
        raw_input: str,
        keyword_source: str,
        research_brief: Optional[str],
        availability: Availability,
        instrument_override: Optional[str],
        name: str,
    ) -> GenerationResult:
        settings = self.settings
        sender = settings.sender

        sections = enforce_intro_rules(sections, sender)
        sections = inject_links_in_sections(sections, settings.pipeline.link_format)
        sections = inject_availability(sections, availability, sender)

        all_text = "\n".join(f"{s.subject}\n{s.body}" for s in sections.values())
        instrument = resolve_instrument(all_text, instrument_override)

        keywords = extract_keywords(keyword_source, research_brief or "")
        candidates = filter_assets_by_keywords(list(assets), keywords)
        log.info("assets_filtered", keywords=len(keywords), assets=len(assets), candidates=len(candidates))

        asset_model = self.asset_model if settings.pipeline.model_asset_selection else None
        selected = None
        selected_email2 = None

        if candidates and sections["email1"].body.strip():
            selected = await select_assets(
                sections["email1"].body,
                candidates,
                instrument,
                model=asset_model,
                max_bytes=settings.attachments.max_attachment_bytes,
                max_documents=settings.attachments.max_documents,
            )
            sections = insert_assets_into_email(sections, selected, "email1", sender)

        if candidates and sections["email2"].body.strip():
            used = selected.file_names() if selected else []
            selected_email2 = await select_assets(
                sections["email2"].body,
                candidates,
                instrument,
                exclude_file_names=used,
                model=asset_model,
                max_bytes=settings.attachments.max_attachment_bytes,
                max_documents=settings.attachments.max_documents,
            )
            sections = insert_assets_into_email(sections, selected_email2, "email2", sender)

        log.info(
            "sequence_finalized",
            name=name,
            instrument=instrument,
            email1_assets=selected.file_names() if selected else [],
            email2_assets=selected_email2.file_names() if selected_email2 else [],
        )

        return GenerationResult(
            name=name,
            instrument=instrument,
            raw_input=raw_input,
            research_brief=research_brief,
            availability=_availability_text(availability),
            sections=complete_sections(sections),
            selected_assets=selected,
            selected_assets_email2=selected_email2,
        )
