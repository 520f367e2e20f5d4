"""
User configuration.

Settings live in a YAML document, looked up in this order: an explicit
path, ``$SPELLS_CONFIG``, then ``$XDG_CONFIG_HOME/spells/config.yaml``
(``~/.config/spells/config.yaml`` when unset). A missing file gives the
defaults. Example::

    data_dir: ~/dnd/tomes
    load_defaults: true
    seed: 42
    log_level: INFO
    prompt: "> "
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

log = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
CONFIG_ENV = "SPELLS_CONFIG"


@dataclass
class SpellsConfig:
    """Interpreter settings."""
    data_dir: Optional[Path] = None     # Where tomes are saved; None resolves per platform
    load_defaults: bool = True          # Evaluate the default tome into new contexts
    seed: Optional[int] = None          # Fixed seed for reproducible rolls
    log_level: str = "WARNING"
    prompt: str = "> "

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpellsConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown configuration keys: {', '.join(unknown)}")

        config = cls(**data)
        if config.data_dir is not None:
            config.data_dir = Path(config.data_dir).expanduser()
        if config.seed is not None and not isinstance(config.seed, int):
            raise ValueError(f"seed must be an integer, got {config.seed!r}")
        if not isinstance(config.load_defaults, bool):
            raise ValueError(f"load_defaults must be true or false, got {config.load_defaults!r}")
        config.log_level = str(config.log_level).upper()
        return config

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        if self.data_dir is not None:
            data["data_dir"] = str(self.data_dir)
        return data


def default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "spells" / CONFIG_FILENAME


def load_config(path: Union[str, Path, None] = None) -> SpellsConfig:
    """
    Load configuration from YAML.

    An explicitly given file must exist; the default locations may be absent.

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValueError: If the document is not a mapping or has unknown keys
    """
    explicit = path is not None or CONFIG_ENV in os.environ
    if path is None:
        path = os.environ.get(CONFIG_ENV) or default_config_path()
    path = Path(path).expanduser()

    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"config not found: {path}")
        log.debug("no config at %s, using defaults", path)
        return SpellsConfig()

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    log.info("loaded config from %s", path)
    return SpellsConfig.from_dict(data)


def save_config(config: SpellsConfig, path: Union[str, Path, None] = None) -> Path:
    """Write configuration as YAML and return the path written."""
    path = Path(path).expanduser() if path is not None else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config.to_dict(), fp, sort_keys=False)
    return path
