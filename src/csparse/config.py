"""TOML config loading for csparse.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "csparse.toml"


@dataclass
class ParserConfig:
    plugins: list[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    color: bool = True
    format: str = "tree"


@dataclass
class CsparseConfig:
    parser: ParserConfig = field(default_factory=ParserConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find csparse.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> CsparseConfig:
    """Parse a csparse.toml file into a CsparseConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = CsparseConfig()

    if "parser" in data:
        prs = data["parser"]
        config.parser = ParserConfig(plugins=list(prs.get("plugins", [])))

    if "output" in data:
        out = data["output"]
        fmt = out.get("format", "tree")
        if fmt not in ("tree", "json"):
            raise ValueError(f"{path}: output.format must be 'tree' or 'json', got {fmt!r}")
        config.output = OutputConfig(color=out.get("color", True), format=fmt)

    return config


def config_for(start_path: Path | None = None) -> CsparseConfig:
    """The nearest config, or defaults when there is none."""
    try:
        return load_config(find_config(start_path))
    except FileNotFoundError:
        return CsparseConfig()
