from __future__ import annotations

import logging
import sys
from typing import Any

from config.settings import get_settings


_INITIALIZED: bool = False

# Fields stamped on every record while a sync run is active
_RUN_FIELDS: dict[str, str] = {}


class SafeExtraFormatter(logging.Formatter):
    """Formatter that tolerates missing extra fields by injecting defaults."""

    DEFAULTS: dict[str, Any] = {
        "step": "-",
        "status": "-",
        "team_id": "-",
        "provider": "-",
        "error": "-",
        "run_id": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


class RunFieldsFilter(logging.Filter):
    """Adds the active run's id and team to records that did not set them explicitly."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _RUN_FIELDS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def bind_run(run_id: str | None, team_id: str | None) -> None:
    _RUN_FIELDS.clear()
    if run_id:
        _RUN_FIELDS["run_id"] = run_id
    if team_id:
        _RUN_FIELDS["team_id"] = team_id


def clear_run() -> None:
    _RUN_FIELDS.clear()


def init_logging(level: str | None = None) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    settings = get_settings()
    log_level_str = (level or settings.log_level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.addFilter(RunFieldsFilter())
        formatter = SafeExtraFormatter(
            fmt=(
                "%(asctime)s %(levelname)s %(name)s %(message)s "
                "step=%(step)s status=%(status)s team_id=%(team_id)s "
                "provider=%(provider)s error=%(error)s run_id=%(run_id)s"
            )
        )
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    _INITIALIZED = True
