"""
ProcessSettings schema.

Frozen runtime settings for batch processes, parsed from YAML by the
loader.  Validation happens at construction so an invalid file fails when
it is loaded, not halfway through a run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

TRANSACTION_MODES = ("commit", "flush")


@dataclass(frozen=True)
class ProcessSettings:
    """Engine settings shared by every process a factory builds."""

    buffer_size: int = 20
    dry_run: bool = False
    commit_when_empty: bool = True
    transaction_mode: str = "commit"  # commit | flush
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if isinstance(self.buffer_size, bool) or not isinstance(self.buffer_size, int):
            raise ValueError(f"buffer_size must be an integer, got {self.buffer_size!r}")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")
        for name in ("dry_run", "commit_when_empty"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a boolean, got {getattr(self, name)!r}")
        if self.transaction_mode not in TRANSACTION_MODES:
            raise ValueError(
                f"transaction_mode must be one of {TRANSACTION_MODES}, "
                f"got {self.transaction_mode!r}"
            )
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"Unknown log level {self.log_level!r}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())
