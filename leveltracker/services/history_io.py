"""JSON persistence for the history stores and the snapshot."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class HistoryLoadError(RuntimeError):
    """Raised when an existing history file cannot be read or parsed."""


def isoformat_utc(moment: datetime) -> str:
    """`2024-01-05T12:00:00.000Z` style timestamps."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def load_document(path: str | Path) -> Optional[dict[str, Any]]:
    """Read a JSON document, returning None when the file does not exist yet."""
    document_path = Path(path)
    try:
        raw = document_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("History file not found, starting empty", extra={"path": str(document_path)})
        return None
    except OSError as exc:
        raise HistoryLoadError(f"Unreadable history file {document_path}: {exc}") from exc

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HistoryLoadError(f"Malformed history file {document_path}: {exc}") from exc

    if not isinstance(document, dict):
        raise HistoryLoadError(f"History file {document_path} is not a JSON object")
    return document


def write_document(path: str | Path, document: dict[str, Any]) -> None:
    """Write via a temporary sibling and rename so readers never see partial files."""
    document_path = Path(path)
    document_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{document_path.name}.", suffix=".tmp", dir=document_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        os.replace(tmp_name, document_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Wrote %s", document_path)
