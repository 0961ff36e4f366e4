import tempfile
from pathlib import Path

from openpyxl import Workbook

from sequence_engine.outreach.importer import load_lead_rows


def test_load_lead_rows():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "leads.xlsx"
        wb = Workbook()
        ws = wb.active
        ws.append(["Date added", "Company", "Website", "Location", "Overview"])
        ws.append(["10/1/2025", "Helix Therapeutics Inc.", "helix.bio", "Boston, MA", "T cell\tengagers\nfor CRC"])
        ws.append([None, None, None])
        ws.append(["10/2/2025", "Acme Bio", None, "Austin, TX", None])
        wb.save(path)

        rows = load_lead_rows(path)

        assert rows == [
            "10/1/2025\tHelix Therapeutics Inc.\thelix.bio\tBoston, MA\tT cell engagers for CRC",
            "10/2/2025\tAcme Bio\t\tAustin, TX",
        ]


def test_load_lead_rows_empty_sheet():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "empty.xlsx"
        Workbook().save(path)

        assert load_lead_rows(path) == []
