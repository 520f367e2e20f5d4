"""
Tests for the command line interface and the REPL.
"""

import io

import pytest

from spells.__main__ import Repl, main
from spells.config import CONFIG_ENV, SpellsConfig
from spells.context import Context
from spells.values import natural_val


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


def scripted(*lines):
    """An input function that replays lines, then signals end of input."""
    queue = list(lines)

    def read(prompt):
        if not queue:
            raise EOFError
        line = queue.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line

    return read


@pytest.fixture
def repl(tmp_path, dice):
    config = SpellsConfig(data_dir=tmp_path / "tomes")
    return Repl(Context(rng=dice), config, out=io.StringIO())


def output(repl):
    return repl.out.getvalue()


class TestEval:
    """spells eval"""

    def test_prints_results(self, capsys):
        assert main(["--no-defaults", "eval", "x = 2", "x * 3"]) == 0
        assert capsys.readouterr().out == "2\n6\n"

    def test_defaults_loaded(self, capsys):
        assert main(["eval", "PROF()"]) == 0
        assert capsys.readouterr().out == "2\n"

    def test_definition_prints_nothing(self, capsys):
        assert main(["--no-defaults", "eval", "f() = 1"]) == 0
        assert capsys.readouterr().out == ""

    def test_seed_is_reproducible(self, capsys):
        main(["--seed", "1", "eval", "4d6k3"])
        first = capsys.readouterr().out
        main(["--seed", "1", "eval", "4d6k3"])
        assert capsys.readouterr().out == first
        assert first.startswith("4d6\tRolls: \t")

    def test_error(self, capsys):
        assert main(["--no-defaults", "eval", "1 +"]) == 1
        captured = capsys.readouterr()
        assert "error[E102]" in captured.err

    def test_undefined_name(self, capsys):
        assert main(["--no-defaults", "eval", "nope"]) == 1
        assert "undefined variable: nope" in capsys.readouterr().err

    def test_missing_config(self, capsys, tmp_path):
        assert main(["-c", str(tmp_path / "none.yaml"), "eval", "1"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_config_disables_defaults(self, capsys, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("load_defaults: false\n", encoding="utf-8")
        assert main(["-c", str(path), "eval", "STR()"]) == 1


class TestRun:
    """spells run"""

    def test_tome(self, capsys, tmp_path):
        tome = tmp_path / "party.tome"
        tome.write_text("# party\nsize = 4\nshares(gp) = gp / size\nshares(100)\n",
                        encoding="utf-8")
        assert main(["--no-defaults", "run", str(tome)]) == 0
        assert capsys.readouterr().out == "4\n25\n"

    def test_missing_file(self, capsys, tmp_path):
        assert main(["run", str(tmp_path / "nope.tome")]) == 1
        assert "File not found" in capsys.readouterr().err


class TestRepl:
    """Interactive session."""

    def test_evaluates_lines(self, repl):
        assert repl.run(scripted("x = 2", "", "x * 3", ".exit nosave")) == 0
        assert output(repl) == "2\n6\n"

    def test_errors_do_not_end_session(self, repl):
        repl.run(scripted("nope", "1", ".exit !"))
        text = output(repl)
        assert "error[E201]" in text
        assert text.endswith("1\n")

    def test_save_then_exit_reuses_path(self, repl, tmp_path):
        repl.run(scripted("x = 5", ".save", "x = 6", ".exit"))
        path = tmp_path / "tomes" / "untitled.tome"
        assert path.read_text(encoding="utf-8") == "x = 6\n"
        assert not (tmp_path / "tomes" / "untitled1.tome").exists()

    def test_save_title(self, repl, tmp_path):
        repl.handle_line("hp = 12")
        repl.handle_line(".save cleric")
        assert (tmp_path / "tomes" / "cleric.tome").read_text(encoding="utf-8") == "hp = 12\n"

    def test_load(self, repl, tmp_path):
        directory = tmp_path / "tomes"
        directory.mkdir()
        (directory / "fighter.tome").write_text("hp = 30\n", encoding="utf-8")
        repl.handle_line("hp = 1")
        repl.handle_line(".load fighter")
        assert repl.context.get_variable(0, "hp") == natural_val(30)
        assert repl.save_path == directory / "fighter.tome"

    def test_load_needs_target(self, repl):
        repl.handle_line(".load")
        assert "usage: .load" in output(repl)

    def test_load_missing(self, repl):
        assert repl.handle_line(".load ghost") is True
        assert "ghost.tome" in output(repl)

    def test_unknown_command(self, repl):
        repl.handle_line(".bogus")
        assert "not a command: bogus" in output(repl)

    def test_bad_exit_argument(self, repl):
        assert repl.handle_line(".exit later") is True
        assert "usage: .exit" in output(repl)

    def test_end_of_input_saves(self, repl, tmp_path):
        repl.run(scripted("y = 1"))
        assert (tmp_path / "tomes" / "untitled.tome").exists()

    def test_double_interrupt_exits_without_saving(self, repl, tmp_path):
        result = repl.run(scripted("y = 1", KeyboardInterrupt(), KeyboardInterrupt()))
        assert result == 0
        assert "Ctrl-C again" in output(repl)
        assert not (tmp_path / "tomes").exists()

    def test_interrupt_reset_by_input(self, repl):
        repl.run(scripted(KeyboardInterrupt(), "1", KeyboardInterrupt(), ".exit nosave"))
        assert output(repl).count("Ctrl-C again") == 2

    def test_bad_number_does_not_end_session(self, repl):
        assert repl.handle_line("1" + "0" * 400 + " + 1") is True
        assert "error[E004]" in output(repl)


class TestSessionCache:
    """The last tome path carries over to the next session."""

    def test_exit_writes_cache(self, repl, tmp_path):
        repl.run(scripted("x = 5", ".save wizard", ".exit"))
        cache = (tmp_path / "tomes" / "_cache.tome").read_text(encoding="utf-8")
        assert "SAVE_PATH" in cache
        assert "wizard.tome" in cache

    def test_restore_reloads_last_tome(self, repl, tmp_path, dice):
        repl.run(scripted("x = 5", ".save wizard", ".exit nosave"))

        config = SpellsConfig(data_dir=tmp_path / "tomes")
        again = Repl(Context(rng=dice), config, out=io.StringIO())
        again.restore()
        assert again.save_path == tmp_path / "tomes" / "wizard.tome"
        assert again.context.get_variable(0, "x") == natural_val(5)
        assert "Loaded" in output(again)

    def test_restore_without_cache(self, repl):
        repl.restore()
        assert repl.save_path is None
        assert output(repl) == ""

    def test_restore_with_missing_tome(self, repl, tmp_path):
        directory = tmp_path / "tomes"
        directory.mkdir()
        (directory / "_cache.tome").write_text(
            f'SAVE_PATH = "{directory / "gone.tome"}"\n', encoding="utf-8")
        repl.restore()
        assert "Error loading" in output(repl)
        assert repl.save_path == directory / "gone.tome"

    def test_interrupt_leaves_cache_alone(self, repl, tmp_path):
        repl.run(scripted(".save wizard", KeyboardInterrupt(), KeyboardInterrupt()))
        assert not (tmp_path / "tomes" / "_cache.tome").exists()
