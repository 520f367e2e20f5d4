#!/usr/bin/env python3
"""
Command line interface for the spells interpreter.

Usage:
    python -m spells eval EXPRESSION [EXPRESSION ...]
    python -m spells run FILE.tome
    python -m spells repl

Examples:
    # Roll an ability check
    python -m spells eval "d20 + STR()"

    # Several statements share one context
    python -m spells eval "sword(m) = 2d6 + m" "sword(3)"

    # Evaluate a tome and print each result
    python -m spells run character.tome

Inside the REPL, lines starting with '.' are commands:
    .save [TITLE|PATH]     write definitions to a tome
    .load [TITLE|PATH]     replace the session with a saved tome
    .exit [nosave]         save (unless 'nosave') and quit

The session remembers the last tome saved or loaded and reopens it on the
next start.
"""

import argparse
import logging
import random
import shlex
import sys
from pathlib import Path
from typing import Callable, List, Optional

from . import persistence
from .config import SpellsConfig, load_config
from .context import Context, create_context
from .errors import SpellsError
from .evaluator import eval_source, eval_tome

log = logging.getLogger(__name__)

NOSAVE_ARGS = ("!", "nosave")


class Repl:
    """Interactive loop around a single context."""

    def __init__(self, context: Context, config: SpellsConfig, out=None,
                 cache: Optional[Context] = None):
        self.context = context
        self.config = config
        self.out = out if out is not None else sys.stdout
        self.cache = cache if cache is not None else Context()
        self.interrupted = False

    @property
    def save_path(self) -> Optional[Path]:
        return persistence.cached_save_path(self.cache)

    @save_path.setter
    def save_path(self, path: Path) -> None:
        persistence.remember_save_path(self.cache, path)

    def restore(self) -> None:
        """Pick up the tome the previous session saved to or loaded."""
        try:
            self.cache = persistence.load_cache(self.config)
        except (SpellsError, OSError, RuntimeError) as e:
            log.warning("ignoring unreadable session cache: %s", e)
            return
        if self.save_path is None:
            return
        try:
            self.cmd_load([])
        except (SpellsError, OSError) as e:
            self._print(f"Error loading {self.save_path}: {e}")

    def write_cache(self) -> None:
        try:
            persistence.save_cache(self.cache, self.config)
        except (OSError, RuntimeError) as e:
            log.warning("could not write the session cache: %s", e)

    def _print(self, text: str) -> None:
        print(text, file=self.out)

    def _target(self, args: List[str]) -> persistence.SaveTarget:
        if len(args) > 1:
            raise ValueError("expected at most one argument")
        if args:
            return persistence.SaveTarget.from_string(args[0])
        if self.save_path is not None:
            return persistence.SaveTarget(path=self.save_path)
        return persistence.SaveTarget.generate()

    def cmd_save(self, args: List[str]) -> bool:
        self.save_path = persistence.save(self.context, self._target(args), self.config)
        self._print(f"Saved to {self.save_path}")
        return True

    def cmd_load(self, args: List[str]) -> bool:
        target = self._target(args)
        if target.is_generated:
            raise ValueError("usage: .load TITLE|PATH")
        self.context, self.save_path = persistence.load(target, self.config, self.context.rng)
        self._print(f"Loaded {self.save_path}")
        return True

    def cmd_exit(self, args: List[str]) -> bool:
        if len(args) > 1 or (args and args[0] not in NOSAVE_ARGS):
            raise ValueError("usage: .exit [nosave]")
        if not args:
            self.cmd_save([])
        self.write_cache()
        return False

    def handle_command(self, text: str) -> bool:
        """Run a dot-command; return False when the session should end."""
        words = shlex.split(text[1:])
        if not words:
            raise ValueError("command syntax: .<command> [argument ...]")
        name, args = words[0], words[1:]
        handler: Optional[Callable[[List[str]], bool]] = getattr(self, f"cmd_{name}", None)
        if handler is None:
            raise ValueError(f"not a command: {name}")
        return handler(args)

    def handle_line(self, text: str) -> bool:
        """Evaluate one line of input; return False when the session should end."""
        self.interrupted = False
        if not text.strip():
            return True
        try:
            if text.lstrip().startswith("."):
                return self.handle_command(text.strip())
            outcome = eval_source(text, self.context)
        except (SpellsError, ValueError, OSError, RuntimeError) as e:
            self._print(str(e))
            return True
        rendered = str(outcome)
        if rendered:
            self._print(rendered)
        return True

    def run(self, read: Callable[[str], str] = input) -> int:
        while True:
            try:
                line = read(self.config.prompt)
            except KeyboardInterrupt:
                if self.interrupted:
                    return 0
                self.interrupted = True
                self._print("\nCtrl-C again to exit without saving.")
                continue
            except EOFError:
                self._print("")
                line = ".exit"
            if not self.handle_line(line):
                return 0


def make_context(config: SpellsConfig) -> Context:
    return create_context(defaults=config.load_defaults, rng=random.Random(config.seed))


def cmd_eval(args, config: SpellsConfig) -> int:
    """Evaluate expressions in order against one context."""
    context = make_context(config)
    for expression in args.expression:
        try:
            outcome = eval_source(expression, context)
        except SpellsError as e:
            print(e, file=sys.stderr)
            return 1
        rendered = str(outcome)
        if rendered:
            print(rendered)
    return 0


def cmd_run(args, config: SpellsConfig) -> int:
    """Evaluate a tome file and print every non-empty result."""
    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    context = make_context(config)
    try:
        outcomes = eval_tome(source_path.read_text(encoding="utf-8"), context)
    except SpellsError as e:
        print(e, file=sys.stderr)
        return 1

    for outcome in outcomes:
        rendered = str(outcome.resolved(context.rng))
        if rendered:
            print(rendered)
    return 0


def cmd_repl(args, config: SpellsConfig) -> int:
    """Start an interactive session."""
    repl = Repl(make_context(config), config)
    repl.restore()
    return repl.run()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='spells',
        description='Dice expression interpreter',
    )
    parser.add_argument('-c', '--config', metavar='FILE',
                        help='Configuration file (YAML)')
    parser.add_argument('--seed', type=int,
                        help='Seed the dice for reproducible results')
    parser.add_argument('--no-defaults', action='store_true',
                        help='Start without the default definitions')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log debug output')

    subparsers = parser.add_subparsers(dest='action')

    eval_parser = subparsers.add_parser('eval', help='Evaluate expressions')
    eval_parser.add_argument('expression', nargs='+', help='Expression source')

    run_parser = subparsers.add_parser('run', help='Evaluate a tome file')
    run_parser.add_argument('file', help='Tome source file')

    subparsers.add_parser('repl', help='Interactive session (default)')

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.seed is not None:
        config.seed = args.seed
    if args.no_defaults:
        config.load_defaults = False

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    log.debug("config: %s", config)

    if args.action == 'eval':
        return cmd_eval(args, config)
    elif args.action == 'run':
        return cmd_run(args, config)
    else:
        return cmd_repl(args, config)


if __name__ == '__main__':
    sys.exit(main())
