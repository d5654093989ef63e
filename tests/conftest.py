import random
import typing

import pytest

import etherdaw.diagnostics
import etherdaw.expander
import etherdaw.pattern


@pytest.fixture
def rng () -> random.Random:

	"""A fixed-seed random source so generated output is repeatable."""

	return random.Random(42)


@pytest.fixture
def diagnostics () -> etherdaw.diagnostics.Diagnostics:

	"""An empty diagnostics collector."""

	return etherdaw.diagnostics.Diagnostics()


@pytest.fixture
def make_context (rng: random.Random, diagnostics: etherdaw.diagnostics.Diagnostics) -> typing.Callable[..., etherdaw.expander.PatternContext]:

	"""Build expansion contexts sharing the fixture random source and diagnostics."""

	def _make (**overrides: typing.Any) -> etherdaw.expander.PatternContext:

		overrides.setdefault("rng", rng)
		overrides.setdefault("diagnostics", diagnostics)
		return etherdaw.expander.PatternContext(**overrides)

	return _make


@pytest.fixture
def one_bar_patterns () -> typing.Dict[str, etherdaw.pattern.Pattern]:

	"""Three distinct one-bar patterns of four quarter notes."""

	return {
		"a": etherdaw.pattern.from_dict({"notes": "C4:q D4:q E4:q F4:q"}),
		"b": etherdaw.pattern.from_dict({"notes": "G4:q A4:q B4:q C5:q"}),
		"c": etherdaw.pattern.from_dict({"notes": "C3:q D3:q E3:q F3:q"}),
	}


@pytest.fixture
def simple_document () -> typing.Dict[str, typing.Any]:

	"""A minimal score document: one one-bar pattern in a four-bar section."""

	return {
		"settings": {"tempo": 120, "key": "C major"},
		"patterns": {"a": {"notes": ["C4:q", "D4:q", "E4:q", "F4:q"]}},
		"sections": {"verse": {"bars": 4, "tracks": {"piano": {"pattern": "a"}}}},
		"arrangement": ["verse"],
	}
