"""Command-line interface for the sequence engine."""

import asyncio
import json
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
import structlog

from sequence_engine.clients.llm import AnthropicModel
from sequence_engine.core.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from sequence_engine.core.db import DEFAULT_DB_PATH, delete_asset, get_asset, get_assets, init_db, insert_asset
from sequence_engine.core.models import Asset
from sequence_engine.outreach.generator import GenerationRequest, GenerationResult, SequenceGenerator
from sequence_engine.outreach.importer import load_lead_rows
from sequence_engine.services.asset_summarizer import summarize_pdf

# Configure structlog for CLI output
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ]
)

log = structlog.get_logger()

ASSETS_FOLDER = Path("data/assets")
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
INSTRUMENTS = ["GeoMx", "CosMx", "CellScape", "MultiPlatform", "General"]


def build_generator(settings: Settings) -> SequenceGenerator:
    models = settings.models
    model = AnthropicModel(
        model=models.draft_model,
        rewrite_model=models.rewrite_model,
        max_tokens=models.max_tokens,
        timeout=models.timeout_seconds,
    )
    asset_model = AnthropicModel(
        model=models.selector_model,
        max_tokens=1000,
        timeout=models.timeout_seconds,
    )
    return SequenceGenerator(model, settings, asset_model=asset_model)


def _read_text(path: Optional[str]) -> Optional[str]:
    return Path(path).read_text() if path else None


def _dump(result: GenerationResult) -> str:
    return result.to_sequence().model_dump_json(by_alias=True, indent=2)


def _emit(result: GenerationResult, output: Optional[str]) -> None:
    text = _dump(result)
    if output:
        Path(output).write_text(text)
        click.echo(f"Saved to {output}")
    else:
        click.echo(text)


@click.group()
def cli():
    """Spatial outreach sequence engine."""


@cli.command()
@click.option("--lead", "lead_text", type=str, default=None, help="Lead intel text")
@click.option("--lead-file", type=click.Path(exists=True), default=None, help="File holding lead intel")
@click.option("--brief-file", type=click.Path(exists=True), default=None,
              help="Research brief to use instead of calling the research service")
@click.option("--availability", type=str, default=None, help="Availability block text")
@click.option("--instrument", type=click.Choice(["auto", "GeoMx", "CosMx", "CellScape"]), default="auto")
@click.option("--name", type=str, default=None, help="Sequence name")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write JSON here instead of stdout")
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def generate(
    lead_text: Optional[str],
    lead_file: Optional[str],
    brief_file: Optional[str],
    availability: Optional[str],
    instrument: str,
    name: Optional[str],
    output: Optional[str],
    db_path: str,
    config_path: str,
):
    """Research a lead and draft a six-part sequence."""
    lead_intel = lead_text or _read_text(lead_file)
    if not lead_intel:
        raise click.UsageError("Provide --lead or --lead-file")

    db = Path(db_path)
    init_db(db)
    settings = load_settings(Path(config_path))

    request = GenerationRequest(
        lead_intel=lead_intel,
        research_brief=_read_text(brief_file),
        name=name,
        availability=availability,
        instrument_override=instrument,
    )
    result = asyncio.run(build_generator(settings).generate(request, get_assets(db)))
    _emit(result, output)


@cli.command("format")
@click.argument("input_file", type=click.Path(exists=True))
@click.option("--availability", type=str, default=None, help="Availability block text")
@click.option("--instrument", type=click.Choice(["auto", "GeoMx", "CosMx", "CellScape"]), default="auto")
@click.option("--name", type=str, default=None, help="Sequence name")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write JSON here instead of stdout")
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def format_sequence(
    input_file: str,
    availability: Optional[str],
    instrument: str,
    name: Optional[str],
    output: Optional[str],
    db_path: str,
    config_path: str,
):
    """Format a pasted sequence without drafting."""
    db = Path(db_path)
    init_db(db)
    settings = load_settings(Path(config_path))

    generator = build_generator(settings)
    result = asyncio.run(generator.assemble_from_paste(
        Path(input_file).read_text(),
        get_assets(db),
        availability=availability,
        instrument_override=instrument,
        name=name,
    ))
    _emit(result, output)


@cli.command()
@click.argument("excel_path", type=click.Path(exists=True))
@click.option("--output-dir", "-o", type=click.Path(), default="sequences", help="Output directory")
@click.option("--availability", type=str, default=None, help="Availability block text")
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def batch(excel_path: str, output_dir: str, availability: Optional[str], db_path: str, config_path: str):
    """Generate a sequence for every lead row in a spreadsheet."""
    db = Path(db_path)
    init_db(db)
    settings = load_settings(Path(config_path))
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    rows = load_lead_rows(Path(excel_path))
    snapshot = get_assets(db)
    generator = build_generator(settings)

    async def run_batch() -> tuple[int, int]:
        generated = 0
        failed = 0
        for index, lead_intel in enumerate(rows, start=1):
            click.echo(f"[{index}/{len(rows)}] Generating...")
            try:
                result = await generator.generate(
                    GenerationRequest(lead_intel=lead_intel, availability=availability),
                    snapshot,
                )
            except Exception as e:
                log.error("batch_row_failed", row=index, error=str(e))
                click.echo(f"  ✗ Error: {e}")
                failed += 1
                continue

            dest = out / f"{index:03d}_{result.name.replace(' ', '_').replace('/', '-')}.json"
            dest.write_text(_dump(result))
            click.echo(f"  → {result.name} ({result.instrument}) saved to {dest}")
            generated += 1
        return generated, failed

    generated, failed = asyncio.run(run_batch())

    click.echo("\n" + "=" * 40)
    click.echo(f"Generated: {generated}")
    click.echo(f"Failed:    {failed}")


@cli.group()
def assets():
    """Manage knowledge-base assets."""


@assets.command("add")
@click.argument("file_path", type=click.Path(exists=True))
@click.option("--instrument", type=click.Choice(INSTRUMENTS), required=True)
@click.option("--summarize-with-model", is_flag=True, help="Ask the selector model for the PDF summary")
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def add_asset(file_path: str, instrument: str, summarize_with_model: bool, db_path: str, config_path: str):
    """Copy a file into the asset folder and register it."""
    db = Path(db_path)
    init_db(db)
    settings = load_settings(Path(config_path))

    source = Path(file_path)
    ASSETS_FOLDER.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    dest = ASSETS_FOLDER / f"{timestamp}_{source.name}"
    shutil.copy(str(source), str(dest))

    asset_type = "Image" if source.suffix.lower() in IMAGE_SUFFIXES else "Document"
    summary = None
    keywords: list[str] = []
    if source.suffix.lower() == ".pdf":
        model = build_generator(settings).asset_model if summarize_with_model else None
        summary, keywords = asyncio.run(summarize_pdf(dest, model))

    asset_id = insert_asset(db, Asset(
        file_name=source.name,
        instrument=instrument,
        type=asset_type,
        size=source.stat().st_size,
        summary=summary,
        keywords=keywords,
        file_path=str(dest),
    ))
    log.info("asset_added", asset_id=asset_id, file_name=source.name, type=asset_type)
    click.echo(f"Added asset {asset_id}: {source.name} ({asset_type}, {instrument})")


@assets.command("list")
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
def list_assets(db_path: str, as_json: bool):
    """List knowledge-base assets, newest first."""
    db = Path(db_path)
    init_db(db)
    items = get_assets(db)

    if as_json:
        click.echo(json.dumps([a.model_dump(by_alias=True) for a in items], indent=2))
        return

    if not items:
        click.echo("No assets")
        return
    for asset in items:
        click.echo(f"{asset.id:>4}  {asset.type:<8}  {asset.instrument:<13}  {asset.size:>9}  {asset.file_name}")


@assets.command("remove")
@click.argument("asset_id", type=int)
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
def remove_asset(asset_id: int, db_path: str):
    """Delete an asset record and its stored file."""
    db = Path(db_path)
    init_db(db)
    asset = get_asset(db, asset_id)
    if asset and delete_asset(db, asset_id):
        if asset.file_path:
            Path(asset.file_path).unlink(missing_ok=True)
        click.echo(f"Removed asset {asset_id}")
    else:
        click.echo(f"Asset not found: {asset_id}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
