"""
requisition_config -- single public entrypoint for workflow configuration.

Responsibility:
    ``get_active_config()`` is the ONLY way to obtain workflow settings at
    runtime.  No other component reads the YAML files or the
    ``REQUISITION_CONFIG_PATH`` environment variable directly.

Architecture position:
    Configuration -- sits above ``requisition_kernel``.  The kernel never
    imports from here; ``bridges`` translates settings into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- settings fail validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``REQUISITION_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying routing decisions to the exact settings in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from requisition_config.loader import load_yaml_file, parse_settings, validate_settings
from requisition_config.schema import WorkflowSettings

_logger = logging.getLogger("requisition_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "REQUISITION_CONFIG_PATH"


def get_active_config(config_path: Path | str | None = None) -> WorkflowSettings:
    """The ONLY public configuration entrypoint.

    Resolution order: explicit ``config_path``, then the
    ``REQUISITION_CONFIG_PATH`` environment variable, then the bundled
    ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the settings fail validation.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)

    settings = parse_settings(load_yaml_file(path))

    errors = validate_settings(settings)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    _logger.info(
        "REQUISITION_CONFIG_TRACE",
        extra={
            "trace_type": "REQUISITION_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "config_path": str(path),
            "finance_manager_max": settings.finance_manager_max,
            "technical_director_max": settings.technical_director_max,
        },
    )

    return settings


__all__ = ["WorkflowSettings", "get_active_config"]
