"""YAML config loader — reads promptr.yml into WorkbenchConfig."""

from pathlib import Path

import yaml

from promptr.schemas.config import WorkbenchConfig


def load_config(path: str | Path | None = None) -> WorkbenchConfig:
    """Load and validate a workbench config file.

    With no path, returns the defaults. Raises ``FileNotFoundError`` if the
    path doesn't exist and ``pydantic.ValidationError`` if the YAML content
    is invalid.
    """
    if path is None:
        return WorkbenchConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = yaml.safe_load(path.read_text())
    # A file with only comments loads as None — treat it as all defaults.
    if raw is None:
        return WorkbenchConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    return WorkbenchConfig(**raw)
