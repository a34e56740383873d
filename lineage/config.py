"""Lineage configuration file management.

Reads and writes the .lineage_config JSON file holding presentation limits
and ingestion options. Command-line flags take precedence over the file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "max_builds": 10,
    "require_signal": True,
    "skip": ["Discontinued"],
    "max_parallel": None,
    "root_path_prefix": "/",
}


class LineageConfig:
    """Manages the .lineage_config JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def max_builds(self) -> int | None:
        """Get the number of most recent builds shown per job (None = all)."""
        val = self._data.get("max_builds", DEFAULT_CONFIG["max_builds"])
        return int(val) if val is not None else None

    @property
    def require_signal(self) -> bool:
        """Whether builds without tests in their lineage are hidden."""
        return bool(
            self._data.get("require_signal", DEFAULT_CONFIG["require_signal"])
        )

    @property
    def skip(self) -> list[str]:
        """Get the job names excluded from ingestion."""
        val = self._data.get("skip", DEFAULT_CONFIG["skip"])
        if isinstance(val, str):
            return [s for s in val.split(",") if s]
        return [str(s) for s in val or []]

    @property
    def max_parallel(self) -> int | None:
        """Get the max parallel job directory readers (None = executor default)."""
        val = self._data.get("max_parallel", DEFAULT_CONFIG["max_parallel"])
        return int(val) if val is not None else None

    @property
    def root_path_prefix(self) -> str:
        """Get the URL prefix used for links between report pages."""
        return str(
            self._data.get("root_path_prefix", DEFAULT_CONFIG["root_path_prefix"])
        )

    def set_config(
        self,
        max_builds: int | None = None,
        skip: list[str] | None = None,
        require_signal: bool | None = None,
    ) -> None:
        """Update configuration values."""
        if max_builds is not None:
            self._data["max_builds"] = max_builds
        if skip is not None:
            self._data["skip"] = list(skip)
        if require_signal is not None:
            self._data["require_signal"] = require_signal
