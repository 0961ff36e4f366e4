"""Sequence pipeline: outline, compose, parse, format, assemble."""

from sequence_engine.outreach.parser import parse_sequence, detect_instrument, derive_sequence_name
from sequence_engine.outreach.outline import build_content_outline, PlatformNotFoundError
from sequence_engine.outreach.composer import generate_sequence, GenerationError
from sequence_engine.outreach.formatter import enforce_intro_rules
from sequence_engine.outreach.links import inject_links_in_sections
from sequence_engine.outreach.availability import inject_availability
from sequence_engine.outreach.redundancy import check_redundancy
from sequence_engine.outreach.generator import SequenceGenerator, GenerationRequest, GenerationResult
from sequence_engine.outreach.importer import load_lead_rows
