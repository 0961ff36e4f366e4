from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from sequence_engine.clients.research import ResearchError
from sequence_engine.core.config import PipelineConfig, Settings
from sequence_engine.core.models import SECTION_KEYS, Asset
from sequence_engine.outreach.availability import AvailabilityInput
from sequence_engine.outreach.generator import GenerationRequest, SequenceGenerator

REFERENCE = "I've also attached a relevant document which outlines CosMx maps T cell niches in FFPE tissue."


@pytest.fixture
def assets():
    return [
        Asset(id=1, file_name="niche.png", instrument="CosMx", type="Image", size=2048, keywords=["t cell"]),
        Asset(
            id=2,
            file_name="niche.pdf",
            instrument="CosMx",
            type="Document",
            size=1024 * 1024,
            summary="CosMx maps T cell niches in FFPE tissue. Second sentence here.",
            keywords=["ffpe"],
        ),
        Asset(id=3, file_name="second.png", instrument="General", type="Image", size=2048, keywords=["ffpe"]),
    ]


@pytest.mark.asyncio
async def test_generate_with_brief(scripted_model, lead_intel, research_brief, draft_sequence, assets):
    model = scripted_model(["draft", "anchored", draft_sequence])
    research = AsyncMock()
    generator = SequenceGenerator(model, Settings(), research=research)

    result = await generator.generate(
        GenerationRequest(lead_intel=lead_intel, research_brief=research_brief),
        assets,
    )

    research.assert_not_awaited()
    assert len(model.calls) == 3
    assert result.name == "Helix Therapeutics Boston"
    assert result.instrument == "CosMx"
    assert result.research_brief == research_brief
    assert list(result.sections) == list(SECTION_KEYS)

    email1 = result.sections["email1"].body
    assert email1.startswith("Hello {{first_name}},\nMy name is Tim Glidewell")
    assert "[Insert Image: niche.png]" in email1
    assert REFERENCE in email1
    assert email1.index(REFERENCE) < email1.index("Best,")
    # No availability given, placeholder stays for the user to fill
    assert "{{availability}}" in email1

    assert result.selected_assets.image == "niche.png"
    assert result.selected_assets.documents == ["niche.pdf"]
    assert result.selected_assets_email2.image == "second.png"
    assert result.selected_assets_email2.documents == []
    assert "[Insert Image: second.png]" in result.sections["email2"].body


@pytest.mark.asyncio
async def test_generate_researches_without_brief(scripted_model, lead_intel, research_brief, draft_sequence):
    model = scripted_model(["draft", "anchored", draft_sequence])
    research = AsyncMock(return_value=research_brief)
    generator = SequenceGenerator(model, research=research)

    result = await generator.generate(
        GenerationRequest(lead_intel=lead_intel, name="Helix", availability="Tuesday 10am-2pm"),
        [],
    )

    research.assert_awaited_once_with(lead_intel)
    assert result.name == "Helix"
    assert result.research_brief == research_brief
    assert result.availability == "Tuesday 10am-2pm"
    assert result.selected_assets is None
    assert result.selected_assets_email2 is None
    assert "Tuesday 10am-2pm" in result.sections["email1"].body


@pytest.mark.asyncio
async def test_research_failure_propagates(scripted_model, lead_intel):
    model = scripted_model()
    generator = SequenceGenerator(model, research=AsyncMock(side_effect=ResearchError("down")))

    with pytest.raises(ResearchError):
        await generator.generate(GenerationRequest(lead_intel=lead_intel), [])

    assert model.calls == []


def test_request_length_limits():
    with pytest.raises(ValidationError):
        GenerationRequest(lead_intel="")
    with pytest.raises(ValidationError):
        GenerationRequest(lead_intel="x" * 50_001)

    assert GenerationRequest(lead_intel="x" * 50_000).lead_intel


@pytest.mark.asyncio
async def test_assemble_from_paste(scripted_model, draft_sequence, assets):
    model = scripted_model()
    generator = SequenceGenerator(model)

    result = await generator.assemble_from_paste(
        draft_sequence,
        assets,
        availability="Tuesday 10am-2pm",
        instrument_override="geomx",
    )

    assert model.calls == []
    assert result.name == "Untitled Sequence"
    assert result.instrument == "GeoMx"
    assert result.research_brief is None
    assert list(result.sections) == list(SECTION_KEYS)
    assert "Tuesday 10am-2pm" in result.sections["email1"].body
    assert "{{availability}}" not in result.sections["email3"].body

    sequence = result.to_sequence().model_dump(by_alias=True)
    assert sequence["rawInput"] == draft_sequence
    assert sequence["selectedAssets"]["image"] == "niche.png"
    assert "selectedAssetsEmail2" in sequence


@pytest.mark.asyncio
async def test_assemble_with_structured_availability(scripted_model, draft_sequence):
    generator = SequenceGenerator(scripted_model())
    availability = AvailabilityInput(window="the week of March 3", time_ranges=["Tue 10am-2pm"])

    result = await generator.assemble_from_paste(draft_sequence, [], availability=availability)

    assert "I am available the week of March 3:" in result.sections["email1"].body
    assert "• Tue 10am-2pm" in result.sections["email2"].body
    assert "the week of March 3" in result.availability


@pytest.mark.asyncio
async def test_paste_rejects_empty_input(scripted_model):
    generator = SequenceGenerator(scripted_model())

    with pytest.raises(ValidationError):
        await generator.assemble_from_paste("", [])


@pytest.mark.asyncio
async def test_model_asset_selection_when_enabled(scripted_model, draft_sequence, assets):
    asset_model = scripted_model([
        '{"image": "niche.png", "documents": ["niche.pdf"], "attachment_reference": "See the attached note on niches."}',
        '{"image": "second.png", "documents": []}',
    ])
    settings = Settings(pipeline=PipelineConfig(model_asset_selection=True))
    generator = SequenceGenerator(scripted_model(), settings, asset_model=asset_model)

    result = await generator.assemble_from_paste(draft_sequence, assets)

    assert len(asset_model.calls) == 2
    assert "See the attached note on niches." in result.sections["email1"].body
    assert result.selected_assets_email2.image == "second.png"
    assert "niche.pdf" not in asset_model.calls[1]["user"]


@pytest.mark.asyncio
async def test_asset_model_unused_when_disabled(scripted_model, draft_sequence, assets):
    asset_model = scripted_model()
    generator = SequenceGenerator(scripted_model(), Settings(), asset_model=asset_model)

    await generator.assemble_from_paste(draft_sequence, assets)

    assert asset_model.calls == []


@pytest.mark.asyncio
async def test_blank_brief_is_researched(scripted_model, lead_intel, research_brief, draft_sequence):
    model = scripted_model(["draft", "anchored", draft_sequence])
    research = AsyncMock(return_value=research_brief)
    generator = SequenceGenerator(model, research=research)

    result = await generator.generate(GenerationRequest(lead_intel=lead_intel, research_brief="  \n"), [])

    research.assert_awaited_once_with(lead_intel)
    assert result.research_brief == research_brief
