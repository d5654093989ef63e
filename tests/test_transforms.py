import pytest

import etherdaw.diagnostics
import etherdaw.pattern
import etherdaw.transforms


def test_transpose_keeps_rests_and_marks () -> None:

	"""Pitches move; rests and articulation marks are untouched."""

	result = etherdaw.transforms.transpose(["C4:q", "r:8", "E4:8>"], 2)

	assert result == ["D4:q", "r:8", "F#4:8>"]


def test_invert_around_first_note () -> None:

	"""Inversion mirrors intervals around the first pitch by default."""

	assert etherdaw.transforms.invert(["D4:q", "A4:q"]) == ["D4:q", "G3:q"]
	assert etherdaw.transforms.invert(["E4:q"], axis="C4") == ["G#3:q"]


def test_retrograde_keeps_durations_with_pitches () -> None:

	"""Reversal moves each duration together with its pitch."""

	assert etherdaw.transforms.retrograde(["C4:q", "D4:8", "E4:h"]) == ["E4:h", "D4:8", "C4:q"]


def test_retrograde_invert () -> None:

	"""Inversion happens before the reversal."""

	assert etherdaw.transforms.retrograde_invert(["D4:q", "A4:8"]) == ["G3:8", "D4:q"]


def test_tonal_answer_swaps_tonic_and_dominant () -> None:

	"""An answer opening on the tonic opens on the dominant; other notes rise a fifth."""

	assert etherdaw.transforms.tonal_answer(["D4:q", "A4:q", "F4:q"], "D4") == ["A4:q", "D5:q", "C5:q"]


def test_head_tail_sequence_interleave () -> None:

	"""The fragment helpers slice, repeat and weave token lists."""

	motif = ["C4:q", "D4:q", "E4:q"]

	assert etherdaw.transforms.extract_head(motif, 2) == ["C4:q", "D4:q"]
	assert etherdaw.transforms.extract_tail(motif, 1) == ["E4:q"]
	assert etherdaw.transforms.extract_tail(motif, 0) == []
	assert etherdaw.transforms.create_sequence(motif[:2], [0, 2]) == ["C4:q", "D4:q", "D4:q", "E4:q"]
	assert etherdaw.transforms.interleave(["a"], ["b", "c"]) == ["a", "b", "c"]


def test_augment_snaps_to_written_lengths () -> None:

	"""Augmented durations are rewritten as the nearest plain or dotted code."""

	assert etherdaw.transforms.augment(["C4:q", "r:q", "E4:8"], 2) == ["C4:h", "r:h", "E4:q"]
	assert etherdaw.transforms.augment(["C4:8t3"], 3) == ["C4:q"]
	assert etherdaw.transforms.diminish(["C4:h."]) == ["C4:q."]


def test_augment_rejects_non_positive_factor () -> None:

	"""Zero or negative factors raise ValueError."""

	with pytest.raises(ValueError):
		etherdaw.transforms.augment(["C4:q"], 0)


def test_stretch_round_trip () -> None:

	"""Halving then doubling restores the original duration codes, chords included."""

	tokens = ["Cmaj7:h", "G7:q.", "r:q"]
	halved = etherdaw.transforms.stretch(tokens, 0.5)

	assert halved == ["Cmaj7:q", "G7:8.", "r:8"]
	assert etherdaw.transforms.stretch(halved, 2.0) == tokens


def test_stretch_keeps_jazz_marks () -> None:

	"""A jazz mark after the duration is not mistaken for a dot."""

	assert etherdaw.transforms.stretch(["D5:q.fall"], 2.0) == ["D5:h.fall"]


def test_scale_velocity () -> None:

	"""Numeric velocities scale numerically; dynamics move to the nearest dynamic."""

	assert etherdaw.transforms.scale_velocity(["C4:q@0.5"], 2.0) == ["C4:q@1"]
	assert etherdaw.transforms.scale_velocity(["C4:q@p"], 2.0) == ["C4:q@f"]


def test_scale_velocity_unmarked_notes () -> None:

	"""Unmarked notes only gain a dynamic when the change is noticeable."""

	assert etherdaw.transforms.scale_velocity(["C4:q"], 1.05) == ["C4:q"]
	assert etherdaw.transforms.scale_velocity(["C4:q"], 0.5) == ["C4:q@p"]


def test_velocity_curve_crescendo () -> None:

	"""A crescendo marks notes from soft to loud."""

	result = etherdaw.transforms.apply_velocity_curve(["C4:q", "r:q", "D4:q", "E4:q"], "crescendo")

	assert result == ["C4:q@p", "r:q", "D4:q@mf", "E4:q@ff"]


def test_unknown_curve_raises () -> None:

	"""Unknown curve names raise ValueError."""

	with pytest.raises(ValueError):
		etherdaw.transforms.curve_value("zigzag", 0.5)


def test_envelope_presets () -> None:

	"""Preset envelopes range between scaled bounds of the base velocity."""

	assert etherdaw.transforms.envelope_values(3, "crescendo", 0.8) == pytest.approx([0.24, 0.6, 0.96])
	assert etherdaw.transforms.envelope_values(4, "accent_downbeats", 0.8) == pytest.approx([0.96, 0.56, 0.96, 0.56])
	assert etherdaw.transforms.envelope_values(1, "swell", 0.8) == [0.8]


def test_envelope_points_are_interpolated () -> None:

	"""Explicit points are spread across the notes and clamped."""

	assert etherdaw.transforms.envelope_values(3, [0.0, 1.0]) == pytest.approx([0.0, 0.5, 1.0])
	assert etherdaw.transforms.envelope_values(2, [1.5]) == [1.0, 1.0]


def test_unknown_envelope_raises () -> None:

	"""Unknown envelope names raise ValueError."""

	with pytest.raises(ValueError):
		etherdaw.transforms.envelope_values(4, "wobble")


def test_apply_envelope_to_notes () -> None:

	"""Velocities are replaced in order and other fields are kept."""

	notes = [etherdaw.pattern.Note("C4", float(i), 1.0, 0.8) for i in range(3)]
	shaped = etherdaw.transforms.apply_envelope(notes, "diminuendo")

	assert [note.start for note in shaped] == [0.0, 1.0, 2.0]
	assert shaped[0].velocity > shaped[1].velocity > shaped[2].velocity


def test_operation_chain () -> None:

	"""Operations run left to right."""

	steps = [
		etherdaw.pattern.TransformStep("transpose", {"semitones": 12}),
		etherdaw.pattern.TransformStep("retrograde"),
	]

	assert etherdaw.transforms.apply_operations(["C4:q", "E4:8"], steps) == ["E5:8", "C5:q"]


def test_unknown_operation_warns () -> None:

	"""An unknown operation leaves the tokens alone and records a warning."""

	diagnostics = etherdaw.diagnostics.Diagnostics()
	steps = [etherdaw.pattern.TransformStep("wobble")]

	assert etherdaw.transforms.apply_operations(["C4:q"], steps, diagnostics) == ["C4:q"]
	assert diagnostics.messages() == ['Unknown transform operation "wobble"']
