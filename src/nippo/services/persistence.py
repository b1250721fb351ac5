"""JSON file persistence for finished reports."""

import json
import logging
import tempfile
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PersistenceService:
    """Manages JSON persistence under ``data_dir/reports/{report_id}.json``."""

    def __init__(self, data_dir: Path) -> None:
        self._reports_dir = data_dir / "reports"
        self._reports_dir.mkdir(parents=True, exist_ok=True)

    def report_path(self, report_id: str) -> Path:
        return self._reports_dir / f"{report_id}.json"

    def save_report(self, report_id: str, model: BaseModel) -> Path:
        dest = self.report_path(report_id)
        self._atomic_write(dest, model.model_dump_json(indent=2))
        logger.info("Persisted report %s", report_id)
        return dest

    def load_report(self, report_id: str) -> dict | None:
        path = self.report_path(report_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text("utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load report %s: %s", report_id, e)
            return None

    @staticmethod
    def _atomic_write(dest: Path, content: str) -> None:
        """Write via temp file + rename to avoid partial writes."""
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(dest.parent), suffix=".tmp"
        )
        try:
            with open(tmp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(dest)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
