"""Domain keyword extraction and knowledge-base asset filtering."""

import re

import structlog

from sequence_engine.core.models import Asset

log = structlog.get_logger()

DISEASE_TERMS = (
    "cancer", "tumor", "tumour", "oncology", "immuno-oncology", "io",
    "lymphoma", "leukemia", "melanoma", "carcinoma", "sarcoma", "glioma", "glioblastoma",
    "breast cancer", "lung cancer", "prostate cancer", "colorectal", "pancreatic",
    "fibrosis", "inflammation", "autoimmune", "rheumatoid",
    "neurodegen", "alzheimer", "parkinson", "neurolog", "neuro",
    "infectious disease", "immunology", "hematolog",
    "renal", "kidney", "liver", "hepat", "cardiac", "cardiovascular",
)

SAMPLE_TERMS = (
    "ffpe", "fresh frozen", "biopsy", "biopsies", "organoid", "organoids",
    "tissue", "blood", "pbmc", "tma", "whole slide", "xenograft",
    "patient-derived", "pdx", "clinical sample", "translational",
)

TECHNIQUE_TERMS = (
    "transcriptom", "proteom", "spatial", "single-cell", "single cell",
    "multiplex", "morpholog", "rna", "protein", "genomic", "epigenom",
    "ihc", "mif", "flow cytometry", "bulk rna-seq", "scrna-seq", "sc-rna",
    "digital pathology", "imaging", "mass spec", "sequencing",
    "high-plex", "multi-omic", "multiomics", "biomarker",
)

INSTRUMENT_TERMS = (
    "cosmx", "geomx", "cellscape",
    "spatial biology", "spatial profiling", "spatial transcriptomics",
    "dsp", "digital spatial profiler", "smi",
)

BIOLOGY_TERMS = (
    "t cell", "t-cell", "b cell", "b-cell", "immune", "tumor microenvironment", "tme",
    "checkpoint", "pd-l1", "pd-1", "ctla-4", "car-t", "car t",
    "antibody", "adc", "bispecific", "t cell engager",
    "cytokine", "chemokine", "receptor", "ligand",
    "niche", "stroma", "epithelial", "endothelial", "macrophage", "dendritic",
    "gene expression", "cell type", "cell state", "phenotyp",
    "resolution", "subcellular", "fov", "throughput", "sensitivity",
)

ALL_TERMS = DISEASE_TERMS + SAMPLE_TERMS + TECHNIQUE_TERMS + INSTRUMENT_TERMS + BIOLOGY_TERMS


def term_pattern(term: str) -> re.Pattern:
    """Leading word boundary so stems match; short terms must stand alone."""
    escaped = re.escape(term.lower())
    if len(term) <= 3:
        return re.compile(rf"\b{escaped}\b", re.I)
    return re.compile(rf"\b{escaped}", re.I)


_TERM_PATTERNS = {term: term_pattern(term) for term in ALL_TERMS}


def _pattern_for(term: str) -> re.Pattern:
    return _TERM_PATTERNS.get(term) or term_pattern(term)


def extract_keywords(
    lead_text: str,
    research_brief: str,
    vocabulary: tuple[str, ...] = ALL_TERMS,
) -> set[str]:
    """Return the vocabulary terms present in the lead text or research brief."""
    combined = f"{lead_text}\n{research_brief}".lower()
    return {term.lower() for term in vocabulary if _pattern_for(term).search(combined)}


def filter_assets_by_keywords(assets: list[Asset], keywords: set[str]) -> list[Asset]:
    """Rank assets by keyword hits, best first.

    Falls back to the full list when nothing matches, so a non-empty input
    never yields an empty result.
    """
    if not keywords or not assets:
        return list(assets)

    scored = []
    for asset in assets:
        asset_text = " ".join([asset.file_name, asset.summary or "", *asset.keywords]).lower()
        score = sum(1 for keyword in keywords if _pattern_for(keyword).search(asset_text))
        scored.append((asset, score))

    matched = [(asset, score) for asset, score in scored if score > 0]
    if not matched:
        log.info("asset_filter_no_matches", assets=len(assets), keywords=len(keywords))
        return list(assets)

    matched.sort(key=lambda item: item[1], reverse=True)
    return [asset for asset, _ in matched]
