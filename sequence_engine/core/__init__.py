"""Core infrastructure: CLI, config, data models, asset store."""

from sequence_engine.core.config import (
    Settings,
    SenderConfig,
    ModelConfig,
    ResearchConfig,
    AttachmentConfig,
    PipelineConfig,
    load_settings,
)
from sequence_engine.core.db import (
    init_db,
    insert_asset,
    get_assets,
    get_asset,
    delete_asset,
)
from sequence_engine.core.models import (
    Asset,
    ContentOutline,
    Section,
    SelectedAssets,
    Sequence,
    SequenceSections,
)
