"""Where a finished report goes: the clipboard or a file."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pyperclip

from julesflow_core.config import Config
from julesflow_core.errors import SinkFailure
from julesflow_core.models import ExtractedData

logger = logging.getLogger(__name__)


def write_clipboard(text: str, config: Config) -> bool:
    """Copy ``text`` to the system clipboard.

    Returns True on success. On failure returns False when
    ``clipboard.fallback_to_console`` is set (the caller prints instead),
    otherwise raises SinkFailure.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        if config.clipboard.fallback_to_console:
            logger.warning("Could not access clipboard, falling back to console output: %s", e)
            return False
        raise SinkFailure(f"Could not copy to clipboard: {e}") from e
    return True


def save_to_file(path: str | Path, content: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def auto_save_path(data: ExtractedData, config: Config, now: datetime | None = None) -> Path:
    """Build ``<directory>/<file_name_pattern>.<md|txt>`` for an extraction.

    The pattern understands ``{type}`` (pr or linear), ``{id}`` and ``{timestamp}``.
    """
    now = now or datetime.now(timezone.utc)
    auto = config.workflow.auto_save
    name = auto.file_name_pattern.format(
        type=data.source_type,
        id=data.source_id,
        timestamp=now.strftime("%Y-%m-%dT%H-%M-%S"),
    )
    return Path(auto.directory) / f"{name}.{config.workflow.default_save_format}"


def auto_save(data: ExtractedData, content: str, config: Config, now: datetime | None = None) -> Path | None:
    """Write ``content`` to the auto-save location when auto-save is enabled."""
    if not config.workflow.auto_save.enabled:
        return None
    path = save_to_file(auto_save_path(data, config, now), content)
    logger.info("💾 Saved extraction to %s", path)
    return path
