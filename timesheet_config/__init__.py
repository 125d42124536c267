"""
timesheet_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain workflow settings at runtime through
    ``get_workflow_settings()``.  Returns a frozen ``WorkflowSettings``;
    ``bridges.build_workflow_policy`` turns it into the kernel's
    ``WorkflowPolicy``.

Architecture position:
    Configuration.  Sits above ``timesheet_kernel`` and beside
    ``timesheet_services``.  The kernel MUST NEVER import from
    ``timesheet_config``.

Failure modes:
    - ``FileNotFoundError`` -- settings file missing.
    - ``ValueError`` -- schema or value validation failures.

Audit relevance:
    Every successful load emits a ``workflow_config_loaded`` log entry
    with the config id, version and checksum, tying every transition to
    the settings that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from timesheet_config.loader import load_settings
from timesheet_config.schema import CacheTagRule, WorkflowSettings

_logger = logging.getLogger("timesheet_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_workflow_settings(path: Path | str | None = None) -> WorkflowSettings:
    """Load and validate workflow settings.

    Args:
        path: Settings file.  Defaults to timesheet_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    settings_path = Path(path) if path is not None else _DEFAULT_SETTINGS_FILE
    settings = load_settings(settings_path)

    _logger.info(
        "workflow_config_loaded",
        extra={
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "audit_mode": settings.audit_mode,
            "lock_window_days": settings.lock_window_days,
            "source": str(settings_path),
        },
    )
    return settings


__all__ = ["CacheTagRule", "WorkflowSettings", "get_workflow_settings"]
