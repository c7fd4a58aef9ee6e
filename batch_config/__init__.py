"""
batch_config -- settings for batch processes.

Responsibility:
    ``get_process_settings()`` is the entry point: it loads the packaged
    ``defaults.yaml`` and overlays an optional user file.  Values are
    validated into a frozen ``ProcessSettings``.

Architecture position:
    Configuration.  Imports only from batch_kernel and PyYAML; the engine
    in batch_process consumes ``ProcessSettings`` through
    ``Process.configure()`` and ``BatchProcessFactory``.
"""

from __future__ import annotations

from pathlib import Path

from batch_kernel.logging_config import get_logger

from batch_config.loader import load_settings, parse_settings
from batch_config.schema import ProcessSettings

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

__all__ = [
    "DEFAULTS_PATH",
    "ProcessSettings",
    "get_process_settings",
    "load_settings",
    "parse_settings",
]


def get_process_settings(path: Path | str | None = None) -> ProcessSettings:
    """
    Return the packaged defaults, overlaid by ``path`` if given.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        KeyError: On unknown sections or keys.
        ValueError: On invalid values.
    """
    settings = load_settings(DEFAULTS_PATH)
    if path is not None:
        settings = load_settings(Path(path), base=settings)
    _logger.debug(
        "process_settings_loaded",
        extra={
            "source": str(path) if path is not None else "defaults",
            "buffer_size": settings.buffer_size,
            "dry_run": settings.dry_run,
            "commit_when_empty": settings.commit_when_empty,
            "transaction_mode": settings.transaction_mode,
        },
    )
    return settings
