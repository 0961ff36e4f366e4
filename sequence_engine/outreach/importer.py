"""Excel lead-row importer."""

from pathlib import Path

import structlog
from openpyxl import load_workbook

log = structlog.get_logger()

HEADER_MARKER = "date added"


def _cell_text(value) -> str:
    if value is None:
        return ""
    return str(value).replace("\t", " ").replace("\n", " ").strip()


def load_lead_rows(excel_path: Path) -> list[str]:
    """Read a lead spreadsheet into tab-delimited lead-intel strings.

    One string per non-empty row, columns kept in sheet order so field
    positions match the research prompt. A header row starting with
    "Date added" is skipped.
    """
    wb = load_workbook(excel_path, read_only=True, data_only=True)
    ws = wb.active

    rows = []
    for row in ws.iter_rows(values_only=True):
        cells = [_cell_text(value) for value in row]
        if not any(cells):
            continue
        if cells[0].lower() == HEADER_MARKER:
            continue

        while cells and not cells[-1]:
            cells.pop()
        rows.append("\t".join(cells))

    wb.close()
    log.info("lead_rows_loaded", path=str(excel_path), rows=len(rows))
    return rows
