import pytest

import etherdaw.pattern


def test_note_list_from_compact_string () -> None:

	"""A notes string becomes a NoteList without bar lines."""

	pattern = etherdaw.pattern.from_dict({"notes": "C4:q E4:q | G4:h"})

	assert pattern == etherdaw.pattern.NoteList(notes=("C4:q", "E4:q", "G4:h"))


def test_several_kinds_become_sequential () -> None:

	"""Notes and chords in one definition play one after the other."""

	pattern = etherdaw.pattern.from_dict({"notes": ["C4:h"], "chords": ["Am:h"], "envelope": "swell"})

	assert isinstance(pattern, etherdaw.pattern.Sequential)
	assert [type(part) for part in pattern.parts] == [etherdaw.pattern.NoteList, etherdaw.pattern.ChordList]
	assert pattern.envelope == "swell"


def test_envelope_forms () -> None:

	"""Envelopes may be a preset name, a mapping or a list of points."""

	assert etherdaw.pattern.from_dict({"notes": "C4:q", "envelope": {"preset": "crescendo"}}).envelope == "crescendo"
	assert etherdaw.pattern.from_dict({"notes": "C4:q", "envelope": {"points": [0.2, 1]}}).envelope == (0.2, 1.0)
	assert etherdaw.pattern.from_dict({"notes": "C4:q", "envelope": [0.5]}).envelope == (0.5,)


def test_drum_shorthand () -> None:

	"""Drum names at the top level are step lines, kept in drum-name order."""

	pattern = etherdaw.pattern.from_dict({"snare": "....x...", "kick": "x...x...", "kit": "808"})

	assert isinstance(pattern, etherdaw.pattern.Drums)
	assert pattern.lines == (("kick", "x...x..."), ("snare", "....x..."))
	assert pattern.kit == "808"
	assert pattern.step == "16"


def test_drum_hits () -> None:

	"""Timed hits keep their compound time strings."""

	pattern = etherdaw.pattern.from_dict({"drums": {"hits": [{"drum": "crash", "time": "h+8", "velocity": 0.9}]}})

	assert pattern.hits == (etherdaw.pattern.DrumHit("crash", "h+8", 0.9),)


def test_euclidean_preset () -> None:

	"""Named rhythms fill in hits and steps."""

	pattern = etherdaw.pattern.from_dict({"euclidean": {"preset": "tresillo", "drum": "kick"}})

	assert (pattern.hits, pattern.steps, pattern.drum) == (3, 8, "kick")


def test_markov_accepts_camel_case () -> None:

	"""camelCase and snake_case keys are both read."""

	pattern = etherdaw.pattern.from_dict({
		"markov": {
			"states": ["1", "5"],
			"preset": "uniform",
			"initialState": "5",
			"duration": ["8", "q"],
			"constrainToScale": True,
		},
	})

	assert pattern.initial_state == "5"
	assert pattern.duration == ("8", "q")
	assert pattern.constrain_to_scale


def test_conditional_and_inheritance () -> None:

	"""Referencing kinds keep the names they refer to."""

	conditional = etherdaw.pattern.from_dict({
		"conditional": {"condition": "density", "operator": ">", "value": 0.7, "then": "busy", "else": "sparse"},
	})
	child = etherdaw.pattern.from_dict({"extends": "melody", "overrides": {"transpose": 5, "octave": -1}})

	assert conditional.condition == etherdaw.pattern.Condition("density", ">", 0.7)
	assert (conditional.then, conditional.otherwise) == ("busy", "sparse")
	assert (child.parent, child.transpose, child.octave, child.notes) == ("melody", 5, -1, None)


def test_transform_operations () -> None:

	"""A single operation or a list of operations both become steps."""

	single = etherdaw.pattern.from_dict({"transform": {"source": "motif", "operation": "invert", "params": {"axis": "C4"}}})
	chain = etherdaw.pattern.from_dict({"transform": {"notes": "C4:q D4:q", "operations": ["retrograde", {"operation": "augment"}]}})

	assert single.operations == (etherdaw.pattern.TransformStep("invert", {"axis": "C4"}),)
	assert [step.operation for step in chain.operations] == ["retrograde", "augment"]
	assert chain.notes == ("C4:q", "D4:q")


def test_invalid_definitions_raise () -> None:

	"""Unknown kinds, missing fields and bad values raise PatternError."""

	with pytest.raises(etherdaw.pattern.PatternError):
		etherdaw.pattern.from_dict({"volume": 3})

	with pytest.raises(etherdaw.pattern.PatternError):
		etherdaw.pattern.from_dict({"arpeggio": {"mode": "up"}})

	with pytest.raises(etherdaw.pattern.PatternError):
		etherdaw.pattern.from_dict({"euclidean": {"hits": 3, "steps": 0}})

	with pytest.raises(etherdaw.pattern.PatternError):
		etherdaw.pattern.from_dict({"arpeggio": {"chord": "C", "mode": "sideways"}})

	with pytest.raises(etherdaw.pattern.PatternError):
		etherdaw.pattern.from_dict({"markov": {"states": ["1", "5"], "duration": []}})


def test_note_expression_fields () -> None:

	"""Only the expression fields that are set are reported."""

	note = etherdaw.pattern.Note("C4", 1.0, 0.5, 0.8, jazz="fall", bend=3, portamento=True)

	assert note.expression() == {"jazz": "fall", "bend": 3, "portamento": True}
	assert note.end == 1.5
	assert not note.is_drum
	assert etherdaw.pattern.Note("drum:kick@909", 0.0, 0.25, 1.0).is_drum
