"""
Tests for saving and loading tomes.
"""

from pathlib import Path

import pytest

from spells import create_context, eval_source
from spells.config import SpellsConfig
from spells.persistence import (
    CACHE_TITLE, SaveTarget, cached_save_path, data_directory, load, load_cache,
    remember_save_path, resolve_save_path, save, save_cache, save_name,
)
from spells.values import natural_val


@pytest.fixture
def config(tmp_path):
    return SpellsConfig(data_dir=tmp_path / "tomes")


class TestSaveTarget:
    """Interpreting a save argument."""

    def test_title(self):
        assert SaveTarget.from_string("wizard") == SaveTarget(title="wizard")

    def test_path(self):
        assert SaveTarget.from_string("party/wizard").path == Path("party/wizard")
        assert SaveTarget.from_string("wizard.tome").path == Path("wizard.tome")

    def test_generated(self):
        assert SaveTarget.generate().is_generated
        assert not SaveTarget(title="x").is_generated


class TestDataDirectory:
    """Where tomes go by default."""

    def test_from_config(self, config, tmp_path):
        assert data_directory(config) == tmp_path / "tomes"

    def test_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert data_directory() == tmp_path / "spells"

    def test_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert data_directory() == tmp_path / ".local" / "share" / "spells"

    def test_none_available(self, monkeypatch):
        for var in ("XDG_DATA_HOME", "HOME", "LOCALAPPDATA"):
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(RuntimeError):
            data_directory()


class TestResolve:
    """Turning targets into files."""

    def test_names(self):
        assert save_name(0) == "untitled"
        assert save_name(2) == "untitled2"

    def test_title(self, config, tmp_path):
        path = resolve_save_path(SaveTarget(title="rogue"), config)
        assert path == tmp_path / "tomes" / "rogue.tome"

    def test_explicit_path(self, config, tmp_path):
        target = SaveTarget(path=tmp_path / "here.txt")
        assert resolve_save_path(target, config) == tmp_path / "here.txt"

    def test_generated_skips_existing(self, config, tmp_path):
        directory = tmp_path / "tomes"
        directory.mkdir()
        assert resolve_save_path(SaveTarget(), config).name == "untitled.tome"
        (directory / "untitled.tome").write_text("", encoding="utf-8")
        (directory / "untitled1.tome").write_text("", encoding="utf-8")
        assert resolve_save_path(SaveTarget(), config).name == "untitled2.tome"


class TestSaveLoad:
    """Writing a context out and reading it back."""

    def test_round_trip(self, config, dice):
        context = create_context(rng=dice)
        eval_source("CHARISMA = 15", context)
        eval_source("charm(dc) = d20 + CHA() >= dc", context)

        path = save(context, SaveTarget(title="bard"), config)
        assert path.read_text(encoding="utf-8") == context.dump_to_string()

        restored, loaded_from = load(SaveTarget(title="bard"), config, rng=dice)
        assert loaded_from == path
        assert restored.get_variable(0, "CHARISMA") == natural_val(15)
        dice.push(10)
        assert eval_source("charm(12)", restored).value.data is True

    def test_save_creates_directory(self, config, tmp_path, context):
        path = save(context, SaveTarget(), config)
        assert path == tmp_path / "tomes" / "untitled.tome"
        assert path.read_text(encoding="utf-8") == ""

    def test_load_missing(self, config):
        with pytest.raises(FileNotFoundError):
            load(SaveTarget(title="ghost"), config)


class TestCache:
    """The session cache remembers the last tome path."""

    def test_missing_cache_is_empty(self, config):
        cache = load_cache(config)
        assert cached_save_path(cache) is None
        assert cache.dump_to_string() == ""

    def test_round_trip(self, config, tmp_path):
        cache = load_cache(config)
        remember_save_path(cache, tmp_path / "tomes" / "wizard.tome")
        path = save_cache(cache, config)
        assert path == tmp_path / "tomes" / f"{CACHE_TITLE}.tome"
        assert "SAVE_PATH" in path.read_text(encoding="utf-8")
        assert cached_save_path(load_cache(config)) == tmp_path / "tomes" / "wizard.tome"

    def test_non_string_path_is_ignored(self, config):
        cache = load_cache(config)
        eval_source("SAVE_PATH = 3", cache)
        assert cached_save_path(cache) is None
