"""Data models shared across the sequence pipeline."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SECTION_KEYS = (
    "email1",
    "email2",
    "linkedinConnection",
    "linkedinMessage",
    "email3",
    "email4",
)
EMAIL_KEYS = ("email1", "email2", "email3", "email4")
LINKEDIN_KEYS = ("linkedinConnection", "linkedinMessage")

PLATFORMS = ("CosMx", "GeoMx", "CellScape")

Platform = Literal["CosMx", "GeoMx", "CellScape"]
AssetInstrument = Literal["GeoMx", "CosMx", "CellScape", "MultiPlatform", "General"]
AssetType = Literal["Image", "Document"]


class CamelModel(BaseModel):
    """Base model that serializes with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Section(BaseModel):
    """One touch point of a sequence."""
    model_config = ConfigDict(frozen=True)

    subject: str = ""
    body: str = ""


SequenceSections = dict[str, Section]


def complete_sections(sections: SequenceSections) -> SequenceSections:
    """Return all six sections in canonical order, synthesizing missing ones."""
    return {key: sections.get(key, Section()) for key in SECTION_KEYS}


def sections_to_dict(sections: SequenceSections) -> dict:
    return {key: section.model_dump() for key, section in sections.items()}


class Asset(CamelModel):
    id: Optional[int] = None
    file_name: str
    instrument: AssetInstrument
    type: AssetType
    size: int
    summary: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    file_path: str = ""


class SelectedAssets(CamelModel):
    image: str = ""
    documents: list[str] = Field(default_factory=list, max_length=2)
    justification_sentence: str = ""
    attachment_reference: str = ""

    def file_names(self) -> list[str]:
        names = [self.image] if self.image else []
        return names + list(self.documents)


class ContentOutline(CamelModel):
    """Structured content a drafting stage is allowed to say."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    platform: Platform
    prospect_anchor: str
    pain: str
    trigger: str
    spatial_advantage: str


class Sequence(CamelModel):
    """Shape handed to the persistence layer."""
    id: Optional[int] = None
    name: str = "Untitled Sequence"
    instrument: Optional[str] = None
    raw_input: str
    research_brief: Optional[str] = None
    availability: Optional[str] = None
    sections: SequenceSections
    selected_assets: Optional[SelectedAssets] = None
    selected_assets_email2: Optional[SelectedAssets] = None
