"""Configuration loading and models."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel


class SenderConfig(BaseModel):
    name: str = "Tim Glidewell"
    title: str = "Spatial Regional Account Manager"
    company: str = "Bruker Spatial Biology"

    @property
    def first_name(self) -> str:
        return self.name.split()[0] if self.name.strip() else ""


class ModelConfig(BaseModel):
    draft_model: str = "claude-opus-4-5-20251101"
    rewrite_model: str = "claude-opus-4-5-20251101"
    selector_model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4000
    timeout_seconds: float = 120.0


class ResearchConfig(BaseModel):
    base_url: str = "https://api.perplexity.ai"
    model: str = "sonar-pro"
    timeout_seconds: float = 120.0
    api_key: str = ""  # falls back to PERPLEXITY_API_KEY


class AttachmentConfig(BaseModel):
    max_attachment_bytes: int = 5 * 1024 * 1024
    max_documents: int = 2


class PipelineConfig(BaseModel):
    redundancy_threshold: float = 0.7
    link_format: Literal["html", "text"] = "html"
    model_asset_selection: bool = False


class Settings(BaseModel):
    sender: SenderConfig = SenderConfig()
    models: ModelConfig = ModelConfig()
    research: ResearchConfig = ResearchConfig()
    attachments: AttachmentConfig = AttachmentConfig()
    pipeline: PipelineConfig = PipelineConfig()


DEFAULT_CONFIG_PATH = Path("config")

DEFAULT_SENDER = SenderConfig()


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from YAML file."""
    settings_file = config_path / "settings.yaml"

    data = {}
    if settings_file.exists():
        with open(settings_file) as f:
            data = yaml.safe_load(f) or {}

    settings = Settings(**data)

    # Check env var for the research key if not set in YAML
    if not settings.research.api_key:
        env_key = os.environ.get("PERPLEXITY_API_KEY", "")
        if env_key:
            settings.research.api_key = env_key

    return settings
