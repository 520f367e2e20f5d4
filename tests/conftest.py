"""
Shared fixtures for the spells tests.
"""

import random

import pytest

from spells import Context, create_context


class ScriptedRandom(random.Random):
    """A random source whose ``randint`` returns faces from a script."""

    def __init__(self, faces=()):
        super().__init__(0)
        self.faces = list(faces)
        self.requests = []

    def push(self, *faces):
        self.faces.extend(faces)

    def randint(self, a, b):
        self.requests.append((a, b))
        if not self.faces:
            raise AssertionError("ran out of scripted faces")
        face = self.faces.pop(0)
        assert a <= face <= b, f"scripted face {face} outside [{a}, {b}]"
        return face


@pytest.fixture
def dice():
    return ScriptedRandom()


@pytest.fixture
def context(dice):
    """A context with no default definitions and scripted dice."""
    return Context(rng=dice)


@pytest.fixture
def default_context(dice):
    """A context preloaded with the default tome and scripted dice."""
    return create_context(rng=dice)
