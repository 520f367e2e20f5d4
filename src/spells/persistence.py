"""
Saving and loading contexts as tome files.

A tome is plain source text: one definition per line, as written by
``Context.dump_to_string``. Loading evaluates it into a fresh context
without the default definitions, since a saved tome already contains them.

The interactive session also keeps a small cache tome, ``_cache``, holding
the path it last saved to so the next session can pick that tome back up.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .config import SpellsConfig
from .context import ROOT_SCOPE, Context
from .evaluator import eval_tome
from .values import ValueKind, string_val

log = logging.getLogger(__name__)

APP_NAME = "spells"
DEFAULT_SAVE_NAME = "untitled"
SAVE_EXTENSION = ".tome"

# Session state kept between runs, stored as a tome of its own
CACHE_TITLE = "_cache"
SAVE_PATH_VAR = "SAVE_PATH"


@dataclass(frozen=True)
class SaveTarget:
    """
    Where to save or load.

    Exactly one form applies: ``path`` (an explicit file), ``title`` (a name
    inside the data directory), or neither (generate an unused name).
    """
    title: Optional[str] = None
    path: Optional[Path] = None

    @classmethod
    def generate(cls) -> "SaveTarget":
        return cls()

    @classmethod
    def from_string(cls, target: str) -> "SaveTarget":
        """Anything that looks like a path is a path; otherwise a title."""
        if "." in target or "/" in target or os.sep in target:
            return cls(path=Path(target).expanduser())
        return cls(title=target)

    @property
    def is_generated(self) -> bool:
        return self.title is None and self.path is None


def data_directory(config: Optional[SpellsConfig] = None) -> Path:
    """
    Directory tomes are saved in.

    Raises:
        RuntimeError: If no configured or environment location is available
    """
    if config is not None and config.data_dir is not None:
        return Path(config.data_dir)

    for var, parts in (
        ("XDG_DATA_HOME", (APP_NAME,)),
        ("HOME", (".local", "share", APP_NAME)),
        ("LOCALAPPDATA", (APP_NAME,)),
    ):
        base = os.environ.get(var)
        if base:
            return Path(base).joinpath(*parts)
    raise RuntimeError("no data directory: set HOME or data_dir in the config")


def save_name(index: int) -> str:
    return DEFAULT_SAVE_NAME if index == 0 else f"{DEFAULT_SAVE_NAME}{index}"


def resolve_save_path(target: SaveTarget, config: Optional[SpellsConfig] = None) -> Path:
    """Turn a target into a concrete file path."""
    if target.path is not None:
        return target.path

    directory = data_directory(config)
    if target.title is not None:
        return directory / f"{target.title}{SAVE_EXTENSION}"

    index = 0
    while (directory / f"{save_name(index)}{SAVE_EXTENSION}").exists():
        index += 1
    return directory / f"{save_name(index)}{SAVE_EXTENSION}"


def save(context: Context, target: SaveTarget, config: Optional[SpellsConfig] = None) -> Path:
    """Write the context's root definitions and return the path written."""
    path = resolve_save_path(target, config)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(context.dump_to_string(), encoding="utf-8")
    log.info("saved to %s", path)
    return path


def load(target: SaveTarget, config: Optional[SpellsConfig] = None,
         rng=None) -> Tuple[Context, Path]:
    """
    Evaluate a tome into a fresh context.

    Raises:
        FileNotFoundError: If the resolved file does not exist
        SpellsError: If the tome fails to parse or evaluate
    """
    path = resolve_save_path(target, config)
    text = path.read_text(encoding="utf-8")
    context = Context(rng)
    eval_tome(text, context)
    log.info("loaded %s", path)
    return context, path


def load_cache(config: Optional[SpellsConfig] = None) -> Context:
    """The cache tome's context, or an empty one when nothing was cached."""
    target = SaveTarget(title=CACHE_TITLE)
    if not resolve_save_path(target, config).exists():
        return Context()
    cache, _ = load(target, config)
    return cache


def save_cache(cache: Context, config: Optional[SpellsConfig] = None) -> Path:
    return save(cache, SaveTarget(title=CACHE_TITLE), config)


def cached_save_path(cache: Context) -> Optional[Path]:
    """The tome path the last session saved to or loaded from, if any."""
    value = cache.get_variable(ROOT_SCOPE, SAVE_PATH_VAR)
    if value is None or value.kind != ValueKind.STRING:
        return None
    return Path(value.data)


def remember_save_path(cache: Context, path: Path) -> None:
    cache.set_variable(ROOT_SCOPE, SAVE_PATH_VAR, string_val(str(path)))
