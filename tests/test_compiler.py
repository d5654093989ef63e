import random
import typing

import pytest

import etherdaw
import etherdaw.compiler
import etherdaw.score
import etherdaw.timeline


def _three_section_document () -> typing.Dict[str, typing.Any]:

	return {
		"settings": {"tempo": 120, "key": "C major"},
		"patterns": {
			"a": {"notes": "C4:q D4:q E4:q F4:q"},
			"b": {"notes": "G4:q A4:q B4:q C5:q"},
			"c": {"notes": "C3:w"},
		},
		"sections": {
			"intro": {"bars": 1, "tracks": {"piano": {"pattern": "b"}}},
			"verse": {"bars": 4, "tracks": {"piano": {"pattern": "a"}}},
			"outro": {"bars": 2, "tracks": {"bass": {"pattern": "c"}}},
		},
		"arrangement": ["intro", "verse", "outro"],
	}


def test_compile_minimal_document (simple_document) -> None:

	"""Four bars of quarter notes at 120 BPM are sixteen notes over eight seconds."""

	result = etherdaw.compiler.compile(simple_document, etherdaw.compiler.CompileOptions(seed=1))

	assert result.stats.total_notes == 16
	assert result.stats.total_bars == 4
	assert result.stats.total_sections == 1
	assert result.stats.instruments == ["piano"]
	assert result.timeline.total_seconds == 8.0
	assert len(result.diagnostics) == 0


def test_note_times_in_seconds (simple_document) -> None:

	"""Each quarter note lasts half a second and starts on the half second."""

	notes = etherdaw.compiler.compile(simple_document).timeline.notes()

	assert [note.time_seconds for note in notes[:4]] == [0.0, 0.5, 1.0, 1.5]
	assert all(note.duration_seconds == 0.5 for note in notes)
	assert [note.pitch for note in notes[:4]] == ["C4", "D4", "E4", "F4"]


def test_sections_follow_each_other () -> None:

	"""Each section starts where the previous one ended."""

	result = etherdaw.compiler.compile(_three_section_document())
	notes = result.timeline.notes()

	assert result.stats.total_bars == 7
	assert notes[0].pitch == "G4"
	assert notes[4].time == 4.0
	assert notes[4].pitch == "C4"
	assert [note.time for note in notes if note.instrument == "bass"] == [20.0, 24.0]
	assert result.timeline.total_seconds == 14.0
	assert result.stats.instruments == ["piano", "bass"]


def test_repeated_section_in_arrangement (simple_document) -> None:

	"""A section listed twice plays twice."""

	simple_document["arrangement"] = ["verse", "verse"]
	result = etherdaw.compiler.compile(simple_document)

	assert result.stats.total_notes == 32
	assert result.stats.total_sections == 2
	assert result.timeline.total_seconds == 16.0


def test_unknown_section_is_skipped_with_warning (simple_document) -> None:

	"""An arrangement entry with no section takes no time and is reported."""

	simple_document["arrangement"] = ["verse", "bridge"]
	result = etherdaw.compiler.compile(simple_document)

	assert result.stats.total_notes == 16
	assert result.stats.total_sections == 1
	assert result.warnings == ['Arrangement references unknown section: "bridge"']


def test_missing_pattern_is_reported_once (simple_document) -> None:

	"""A missing pattern appears once even though validation and resolution both see it."""

	simple_document["sections"]["verse"]["tracks"]["bass"] = {"pattern": "ghost"}
	result = etherdaw.compiler.compile(simple_document)

	assert result.warnings == ['Section "verse" track "bass" references unknown pattern: "ghost"']
	assert result.stats.total_notes == 16


def test_start_and_end_window () -> None:

	"""Only the sections between start and end compile, and they start at beat 0."""

	options = etherdaw.compiler.CompileOptions(start_section="verse", end_section="verse")
	result = etherdaw.compiler.compile(_three_section_document(), options)
	notes = result.timeline.notes()

	assert notes[0].time == 0.0
	assert notes[0].pitch == "C4"
	assert result.stats.total_sections == 1
	assert result.stats.total_bars == 4
	assert result.stats.instruments == ["piano"]


def test_window_to_the_end () -> None:

	"""A start section without an end runs to the end of the arrangement."""

	result = etherdaw.compiler.compile(_three_section_document(), etherdaw.compiler.CompileOptions(start_section="verse"))

	assert result.stats.total_bars == 6
	assert result.stats.instruments == ["piano", "bass"]


def test_unknown_window_sections_warn () -> None:

	"""Unknown start or end sections are reported and the whole arrangement compiles."""

	options = etherdaw.compiler.CompileOptions(start_section="bridge", end_section="coda")
	result = etherdaw.compiler.compile(_three_section_document(), options)

	assert result.stats.total_bars == 7
	assert result.warnings == [
		'Start section "bridge" is not in the arrangement',
		'End section "coda" is not in the arrangement',
	]


def test_section_tempo_emits_change_and_reverts (simple_document) -> None:

	"""A slower section adds a tempo change; the next plain section returns to the base tempo."""

	simple_document["sections"]["slow"] = {"bars": 1, "tempo": 60, "tracks": {"piano": {"pattern": "a"}}}
	simple_document["arrangement"] = ["verse", "slow", "verse"]
	timeline = etherdaw.compiler.compile(simple_document).timeline

	changes = [(event.time, event.tempo, event.time_seconds) for event in timeline.events if isinstance(event, etherdaw.timeline.TempoEvent)]

	assert changes == [(16.0, 60.0, 8.0), (20.0, 120.0, 12.0)]

	slow_notes = [note for note in timeline.notes() if 16.0 <= note.time < 20.0]

	assert [note.time_seconds for note in slow_notes] == [8.0, 9.0, 10.0, 11.0]
	assert all(note.duration_seconds == 1.0 for note in slow_notes)
	assert timeline.total_seconds == 20.0


def test_section_key_emits_key_change (simple_document) -> None:

	"""A section in another key adds a key change at its first beat."""

	simple_document["sections"]["bridge"] = {"bars": 1, "key": "A minor", "tracks": {"piano": {"pattern": "a"}}}
	simple_document["arrangement"] = ["verse", "bridge"]
	timeline = etherdaw.compiler.compile(simple_document).timeline

	keys = [(event.time, event.key) for event in timeline.events if isinstance(event, etherdaw.timeline.KeyEvent)]

	assert keys == [(16.0, "A minor")]


def test_tempo_and_key_options_override_settings (simple_document) -> None:

	"""Option tempo and key replace the score settings."""

	options = etherdaw.compiler.CompileOptions(tempo=60, key="D dorian")
	result = etherdaw.compiler.compile(simple_document, options)

	assert result.timeline.total_seconds == 16.0
	assert result.timeline.settings.key == "D dorian"
	assert not any(isinstance(event, etherdaw.timeline.TempoEvent) for event in result.timeline.events)


def test_compound_time_signature (simple_document) -> None:

	"""Bars of 6/8 are three quarter-note beats long."""

	simple_document["settings"]["timeSignature"] = "6/8"
	simple_document["sections"]["verse"]["bars"] = 2
	result = etherdaw.compiler.compile(simple_document)

	assert [note.time for note in result.timeline.notes()] == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


def test_invalid_time_signature_raises (simple_document) -> None:

	"""An unusable time signature stops compilation before any work."""

	simple_document["settings"]["time_signature"] = "4/3"

	with pytest.raises(ValueError):
		etherdaw.compiler.compile(simple_document)


def test_invalid_document_raises () -> None:

	"""A document that does not fit the data model raises ScoreError."""

	with pytest.raises(etherdaw.score.ScoreError):
		etherdaw.compiler.compile({"settings": {"tempo": -10}})

	with pytest.raises(etherdaw.score.ScoreError):
		etherdaw.compiler.compile({"sections": {"slow": {"bars": 1, "tempo": 0}}, "arrangement": ["slow"]})

	with pytest.raises(etherdaw.score.ScoreError):
		etherdaw.compiler.compile({"patterns": {"walk": {"markov": {"states": ["1", "5"], "steps": 4, "duration": []}}}})


def test_muted_tracks (simple_document) -> None:

	"""Muted tracks are silent unless the options keep them."""

	simple_document["sections"]["verse"]["tracks"]["pad"] = {"pattern": "a", "mute": True}

	assert etherdaw.compiler.compile(simple_document).stats.total_notes == 16

	result = etherdaw.compiler.compile(simple_document, etherdaw.compiler.CompileOptions(skip_muted=False))

	assert result.stats.total_notes == 32
	assert result.stats.instruments == ["piano", "pad"]


def test_malformed_token_is_an_error_not_a_crash (simple_document) -> None:

	"""A bad token is an error diagnostic; the other tracks still compile."""

	simple_document["patterns"]["broken"] = {"notes": "C4:q D4:z"}
	simple_document["sections"]["verse"]["tracks"]["lead"] = {"pattern": "broken"}
	result = etherdaw.compiler.compile(simple_document)

	assert result.diagnostics.has_errors()
	assert result.stats.total_notes == 16


def test_seeded_compiles_are_identical (simple_document) -> None:

	"""The same seed reproduces a humanized performance exactly."""

	simple_document["sections"]["verse"]["tracks"]["piano"]["humanize"] = 0.6

	first = etherdaw.compiler.compile(simple_document, etherdaw.compiler.CompileOptions(seed=11))
	second = etherdaw.compiler.compile(simple_document, etherdaw.compiler.CompileOptions(seed=11))

	assert first.timeline.as_dict() == second.timeline.as_dict()


def test_injected_random_source (simple_document) -> None:

	"""An injected generator is used in place of the seed."""

	simple_document["sections"]["verse"]["tracks"]["piano"]["humanize"] = 0.6

	first = etherdaw.compiler.compile(simple_document, etherdaw.compiler.CompileOptions(rng=random.Random(4), seed=99))
	second = etherdaw.compiler.compile(simple_document, etherdaw.compiler.CompileOptions(rng=random.Random(4)))

	assert first.timeline.as_dict() == second.timeline.as_dict()


def test_stats_as_dict (simple_document) -> None:

	"""Statistics serialize with camelCase keys."""

	stats = etherdaw.compiler.compile(simple_document).stats.as_dict()

	assert stats["totalNotes"] == 16
	assert stats["totalBars"] == 4
	assert stats["durationSeconds"] == 8.0


# ── Validation and analysis ──────────────────────────────────────────


def test_validate_score (simple_document) -> None:

	"""Validation reports every unknown reference."""

	simple_document["arrangement"].append("chorus")
	simple_document["sections"]["verse"]["tracks"]["bass"] = {"patterns": ["a", "missing"]}

	assert etherdaw.compiler.validate_score(simple_document).messages() == [
		'Arrangement references unknown section: "chorus"',
		'Section "verse" track "bass" references unknown pattern: "missing"',
	]


def test_validate_instruments (simple_document) -> None:

	"""Tracks must match a declared instrument only when instruments are declared."""

	assert len(etherdaw.compiler.validate_score(simple_document)) == 0

	simple_document["instruments"] = {"bass": {"preset": "synth_bass"}}

	assert etherdaw.compiler.validate_score(simple_document).messages() == [
		'Section "verse" has track "piano" with no matching instrument',
	]


def test_analyze () -> None:

	"""Analysis counts bars and honours section tempos."""

	document = _three_section_document()
	document["sections"]["outro"]["tempo"] = 60
	document["arrangement"].append("missing")

	analysis = etherdaw.compiler.analyze(document)

	assert analysis.total_sections == 4
	assert analysis.total_bars == 7
	assert analysis.duration_seconds == pytest.approx(2.0 + 8.0 + 8.0)
	assert analysis.instruments == ["piano", "bass"]
	assert [summary.name for summary in analysis.sections] == ["intro", "verse", "outro"]
	assert analysis.patterns == ["a", "b", "c"]


def test_create_simple_score () -> None:

	"""A simple score fills its one section with each pattern."""

	score = etherdaw.create_simple_score({"lead": ["C4:q", "E4:q", "G4:h"]}, bars=2)
	result = etherdaw.compile(score, etherdaw.CompileOptions(seed=42))

	assert score.arrangement == ["main"]
	assert [note.pitch for note in result.timeline.notes()] == ["C4", "E4", "G4"] * 2
	assert result.timeline.total_seconds == 4.0
