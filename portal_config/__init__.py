"""
portal_config -- single public entrypoint for portal configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``. No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration. This package sits above ``portal_kernel``. The kernel
    MUST NEVER import from ``portal_config``; ``portal_config.bridges``
    turns a ``PortalConfig`` into wired kernel objects.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Layering: the packaged ``sets/default.yaml`` is read first, then an
      explicit file or the file named by ``PORTAL_CONFIG_FILE`` overlays it.
    - Deterministic checksum: the same settings always produce the same
      ``PortalConfig.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the overlay file does not exist.
    - ``ValueError`` -- unknown keys or wrongly typed values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PORTAL_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from portal_config.loader import load_yaml_file, merge_layers, parse_config
from portal_config.schema import PortalConfig

__all__ = ["CONFIG_FILE_ENV", "PortalConfig", "get_active_config"]

_logger = logging.getLogger("portal_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_FILE_ENV = "PORTAL_CONFIG_FILE"


def get_active_config(config_path: Path | str | None = None) -> PortalConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Overlay file. Defaults to ``$PORTAL_CONFIG_FILE`` when
            set, otherwise no overlay.

    Returns:
        PortalConfig with its checksum stamped.

    Raises:
        FileNotFoundError: If the overlay file is missing.
        ValueError: If validation fails.
    """
    layers = [load_yaml_file(_DEFAULT_CONFIG_FILE)]

    overlay = config_path or os.environ.get(CONFIG_FILE_ENV)
    if overlay:
        layers.append(load_yaml_file(Path(overlay)))

    config = parse_config(merge_layers(*layers))

    _logger.info(
        "PORTAL_CONFIG_TRACE",
        extra={
            "trace_type": "PORTAL_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "overlay": str(overlay) if overlay else None,
            "persistent": config.data_dir is not None,
            "strict_invariants": config.strict_invariants,
        },
    )
    return config
