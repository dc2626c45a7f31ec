"""File-based persistence for search reports and recommended timetables."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import settings
from ..schemas.search import SearchReport
from ..services.outputs.formatter import moves_to_csv, search_report_to_json, timetable_to_csv

if TYPE_CHECKING:
    from ..services.search.solution import Solution

REPORT_FILE = "report.json"
MOVES_FILE = "moves.csv"
TIMETABLE_FILE = "timetable.csv"


class FileStorage:
    """Keeps one directory per search run under ``<root>/outputs``.

    A run directory is named after the primary service and the UTC time the run
    was saved, and holds the report, the accepted moves and the final timetable.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def save_search(self, report: SearchReport, solution: Solution) -> Path:
        """Write a finished run and record its directory on ``report.output_dir``."""
        run_dir = self._run_directory(report.primary_service_id)
        report.output_dir = str(run_dir)
        payload = json.dumps(search_report_to_json(report), ensure_ascii=False, indent=2)
        _write_text(run_dir / REPORT_FILE, payload)
        _write_text(run_dir / MOVES_FILE, moves_to_csv(report.moves))
        _write_text(run_dir / TIMETABLE_FILE, timetable_to_csv(solution))
        return run_dir

    def _run_directory(self, service_id: str) -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"search_{service_id}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path


def _write_text(path: Path, content: str) -> None:
    # csv content already carries its own line endings
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(content)
