"""Configuration for changeguard analysis sessions.

Settings live in the ``[analysis]`` table of ``~/.changeguard/config.toml``
(override the directory with ``CHANGEGUARD_HOME``)::

    [analysis]
    reference_high_threshold = 10
    reference_critical_threshold = 50
    comment_markers = ["//", "#", "/*"]
    replace_on_reindex = false
    max_listed_references = 10
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("CHANGEGUARD_HOME", str(Path.home() / ".changeguard"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_COMMENT_MARKERS: Tuple[str, ...] = ("//", "#", "/*")


@dataclass
class AnalysisConfig:
    """Tunables for reference scanning and impact severity."""

    # More references than this bumps a medium impact to high.
    reference_high_threshold: int = 10
    # More references than this forces a critical impact.
    reference_critical_threshold: int = 50
    comment_markers: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_COMMENT_MARKERS)
    # False keeps the index append-only across re-indexing of one path.
    replace_on_reindex: bool = False
    max_listed_references: int = 10

    def __post_init__(self) -> None:
        self.comment_markers = tuple(self.comment_markers)
        if self.reference_high_threshold < 0 or self.reference_critical_threshold < 0:
            raise ValueError("reference thresholds must be non-negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown [analysis] settings: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


def load_analysis_config(path: Optional[Path] = None) -> AnalysisConfig:
    """Load the ``[analysis]`` section from TOML.

    Falls back to defaults when the file does not exist or cannot be read.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return AnalysisConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s, using defaults: %s", config_path, exc)
        return AnalysisConfig()

    return AnalysisConfig.from_dict(data.get("analysis", {}))
