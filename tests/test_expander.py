import pytest

import etherdaw.expander
import etherdaw.notation
import etherdaw.pattern


def _pitches (result: etherdaw.expander.ExpandedPattern) -> list:

	return [note.pitch for note in result.notes]


def _starts (result: etherdaw.expander.ExpandedPattern) -> list:

	return [note.start for note in result.notes]


# ── Token kinds ──────────────────────────────────────────────────────

def test_note_list_with_rest (make_context) -> None:

	"""Rests advance time; the length is the sum of every duration."""

	result = etherdaw.expander.expand(etherdaw.pattern.NoteList(notes=("C4:q", "r:q", "E4:h")), make_context())

	assert result.total_beats == 4.0
	assert _starts(result) == [0.0, 2.0]
	assert _pitches(result) == ["C4", "E4"]


def test_velocity_and_articulation (make_context) -> None:

	"""Accents add to the track velocity, explicit velocities win, staccato shortens the sound only."""

	pattern = etherdaw.pattern.NoteList(notes=("C4:q>", "D4:q>@0.9", "E4:q*", "F4:q"))
	result = etherdaw.expander.expand(pattern, make_context(velocity=0.6))

	assert [note.velocity for note in result.notes] == pytest.approx([0.8, 1.0, 0.6, 0.6])
	assert result.notes[2].duration == pytest.approx(0.3)
	assert _starts(result) == [0.0, 1.0, 2.0, 3.0]


def test_expression_passes_through (make_context) -> None:

	"""Timing offsets and probabilities reach the expanded notes."""

	result = etherdaw.expander.expand(etherdaw.pattern.NoteList(notes=("C4:q-10ms", "D4:q?0.5")), make_context())

	assert result.notes[0].timing_offset == -10
	assert result.notes[1].probability == 0.5


def test_malformed_token_raises (make_context) -> None:

	"""Token errors are not swallowed by expansion."""

	with pytest.raises(etherdaw.notation.NoteParseError):
		etherdaw.expander.expand(etherdaw.pattern.NoteList(notes=("C4:z",)), make_context())


def test_chords_sound_together (make_context) -> None:

	"""Chord tones share a start; chord rests take time."""

	result = etherdaw.expander.expand(etherdaw.pattern.ChordList(chords=("Cmaj7:h", "r:h", "G:w")), make_context())

	assert result.total_beats == 8.0
	assert _starts(result) == [0.0] * 4 + [4.0] * 3
	assert _pitches(result)[4:] == ["G3", "B3", "D4"]


def test_degrees (make_context) -> None:

	"""Degrees use the key, cycle the rhythm, and inline durations skip the rhythm list."""

	pattern = etherdaw.pattern.Degrees(degrees=("1", "3", "5+", "7b:h", "b3"), rhythm=("8", "q"))
	result = etherdaw.expander.expand(pattern, make_context(key="C major"))

	assert _pitches(result) == ["C4", "E4", "G5", "A#4", "D#4"]
	assert _starts(result) == [0.0, 0.5, 1.5, 2.0, 4.0]
	assert result.total_beats == 5.0


def test_parse_degree () -> None:

	"""Degree tokens split into their parts."""

	assert etherdaw.expander.parse_degree("2#-:8.") == (2, 1, -1, "8.")
	assert etherdaw.expander.parse_degree("b7") == (7, -1, 0, None)

	with pytest.raises(etherdaw.notation.NoteParseError):
		etherdaw.expander.parse_degree("seven")


# ── Generated kinds ──────────────────────────────────────────────────

def test_arpeggio_steps_set_length (make_context, diagnostics) -> None:

	"""An arpeggio with steps cycles the chord and has a known length."""

	pattern = etherdaw.pattern.Arpeggio(chord="C", mode="up", steps=8, duration="16")
	result = etherdaw.expander.expand(pattern, make_context())

	assert _pitches(result) == ["C3", "E3", "G3"] * 2 + ["C3", "E3"]
	assert result.total_beats == 2.0
	assert result.notes[0].duration == pytest.approx(0.2)
	assert len(diagnostics) == 0


def test_arpeggio_without_steps_warns (make_context, diagnostics) -> None:

	"""Without steps the natural cycle plays once and a warning says how to fix it."""

	pattern = etherdaw.pattern.Arpeggio(chord="Am", mode="updown", duration="8")
	result = etherdaw.expander.expand(pattern, make_context())

	assert _pitches(result) == ["A3", "C4", "E4", "C4"]
	assert result.total_beats == 2.0
	assert diagnostics.messages() == ['Arpeggio on "Am" has no steps; set steps to fix its length']


def test_arpeggio_octaves (make_context) -> None:

	"""Indices past the chord continue an octave up."""

	assert etherdaw.expander.arpeggio_indices(3, "down", 2, None, make_context().rng) == [6, 5, 4, 3, 2, 1]

	pattern = etherdaw.pattern.Arpeggio(chord="C", octaves=2, steps=4)

	assert _pitches(etherdaw.expander.expand(pattern, make_context())) == ["C3", "E3", "G3", "C4"]


def test_arpeggio_with_zero_steps_is_silent (make_context, diagnostics) -> None:

	"""Zero steps plays nothing and is not mistaken for a missing step count."""

	rng = make_context().rng

	assert etherdaw.expander.arpeggio_indices(3, "up", 1, 0, rng) == []
	assert etherdaw.expander.arpeggio_indices(3, "random", 1, 0, rng) == []

	result = etherdaw.expander.expand(etherdaw.pattern.Arpeggio(chord="C", steps=0), make_context())

	assert result.notes == []
	assert result.total_beats == 0.0
	assert len(diagnostics) == 0


def test_drum_lines (make_context) -> None:

	"""Hits play at 80% of the track velocity, accents at full velocity."""

	pattern = etherdaw.pattern.Drums(lines=(("kick", "x...>..."), ("hihat", "x.x.x.x.")), kit="808")
	result = etherdaw.expander.expand(pattern, make_context(velocity=1.0))

	kicks = [note for note in result.notes if note.pitch == "drum:kick@808"]

	assert result.total_beats == 2.0
	assert [note.start for note in kicks] == [0.0, 1.0]
	assert [note.velocity for note in kicks] == pytest.approx([0.8, 1.0])
	assert len(result.notes) == 6
	assert _starts(result) == sorted(_starts(result))


def test_drum_bars_and_hits (make_context) -> None:

	"""Bars fix the length; timed hits alone last at least one bar."""

	barred = etherdaw.pattern.Drums(lines=(("kick", "x" * 32),), bars=1)
	hits = etherdaw.pattern.Drums(hits=(etherdaw.pattern.DrumHit("crash", "h+8", 0.9),))

	barred_result = etherdaw.expander.expand(barred, make_context())
	hits_result = etherdaw.expander.expand(hits, make_context())

	assert barred_result.total_beats == 4.0
	assert len(barred_result.notes) == 16
	assert hits_result.total_beats == 4.0
	assert _starts(hits_result) == [2.5]
	assert hits_result.notes[0].velocity == 0.9


def test_drum_hits_extend_past_lines (make_context) -> None:

	"""A timed hit after the last line step lengthens the pattern so every note starts inside it."""

	pattern = etherdaw.pattern.from_dict({"drums": {"lines": {"kick": "x..."}, "hits": [{"drum": "snare", "time": "w"}]}})
	result = etherdaw.expander.expand(pattern, make_context())

	assert result.total_beats == 4.25
	assert _starts(result) == [0.0, 4.0]
	assert all(0.0 <= start < result.total_beats for start in _starts(result))


def test_drum_time () -> None:

	"""Compound times add their parts."""

	assert etherdaw.expander.parse_drum_time("h+8") == 2.5
	assert etherdaw.expander.parse_drum_time("1.5") == 1.5

	with pytest.raises(etherdaw.notation.NoteParseError):
		etherdaw.expander.parse_drum_time("q+soon")


def test_drums_are_never_shifted (make_context) -> None:

	"""Octave and transpose overrides leave drum notes alone."""

	pattern = etherdaw.pattern.Drums(lines=(("snare", "x"),))
	result = etherdaw.expander.expand(pattern, make_context(octave=2, transpose=3))

	assert _pitches(result) == ["drum:snare@909"]


def test_euclidean (make_context) -> None:

	"""Hits land on the Euclidean steps; the length is every step."""

	pattern = etherdaw.pattern.Euclidean(hits=3, steps=8, duration="8", pitch="E2")
	result = etherdaw.expander.expand(pattern, make_context())

	assert _starts(result) == [0.0, 1.5, 3.0]
	assert _pitches(result) == ["E2"] * 3
	assert result.total_beats == 4.0


def test_markov_length_includes_rests (make_context) -> None:

	"""The length counts every step; velocities scale with the track."""

	pattern = etherdaw.pattern.Markov(
		states = ("1", "rest"),
		steps = 4,
		duration = "q",
		transitions = {"1": {"rest": 1.0}, "rest": {"1": 1.0}},
	)
	result = etherdaw.expander.expand(pattern, make_context(velocity=0.5))

	assert result.total_beats == 4.0
	assert _starts(result) == [0.0, 2.0]

	for note in result.notes:
		assert 0.35 <= note.velocity <= 0.45


def test_markov_scale_constraint_uses_chord_scale (make_context) -> None:

	"""A constrained Markov line keeps the pitches of its chord scale instead of snapping to the track key."""

	pattern = etherdaw.pattern.Markov(
		states = ("3",),
		steps = 2,
		duration = "q",
		transitions = {"3": {"3": 1.0}},
		chord_scale = "D7",
		constrain_to_scale = True,
	)
	result = etherdaw.expander.expand(pattern, make_context(key="C major"))

	assert _pitches(result) == ["F#3", "F#3"]


def test_voice_lead_durations (make_context) -> None:

	"""Bare symbols last a bar; tokens carry their own duration."""

	pattern = etherdaw.pattern.VoiceLead(progression=("Dm7", "G7:h"), voices=4)
	result = etherdaw.expander.expand(pattern, make_context())

	assert result.total_beats == 6.0
	assert _starts(result) == [0.0] * 4 + [4.0] * 4


def test_tuplet_and_rest (make_context) -> None:

	"""Three eighths in the time of two fill one beat; rests have length only."""

	tuplet = etherdaw.expander.expand(etherdaw.pattern.Tuplet(notes=("C4:8", "D4:8", "E4:8")), make_context())
	rest = etherdaw.expander.expand(etherdaw.pattern.Rest(duration="h"), make_context())

	assert tuplet.total_beats == pytest.approx(1.0)
	assert _starts(tuplet) == pytest.approx([0.0, 1 / 3, 2 / 3])
	assert (rest.notes, rest.total_beats) == ([], 2.0)


# ── Post-processing ──────────────────────────────────────────────────

def test_envelope_and_scale_constraint (make_context, diagnostics) -> None:

	"""Envelopes reshape velocity; constrained notes snap into the key."""

	pattern = etherdaw.pattern.NoteList(notes=("C#4:q", "D4:q", "F#4:q"), envelope="crescendo", constrain_to_scale=True)
	result = etherdaw.expander.expand(pattern, make_context(key="C major"))

	assert _pitches(result) == ["D4", "D4", "G4"]
	assert result.notes[0].velocity < result.notes[1].velocity < result.notes[2].velocity

	bad = etherdaw.pattern.NoteList(notes=("C4:q", "D4:q"), envelope="wobble")
	etherdaw.expander.expand(bad, make_context())

	assert len(diagnostics) == 1


def test_context_octave_and_transpose (make_context) -> None:

	"""Track overrides shift every pitched note."""

	result = etherdaw.expander.expand(etherdaw.pattern.NoteList(notes=("C4:q",)), make_context(octave=-1, transpose=2))

	assert _pitches(result) == ["D3"]


# ── Referencing kinds ────────────────────────────────────────────────

def test_transform_of_named_source (make_context, one_bar_patterns) -> None:

	"""A transform reads its source's tokens and applies its operations."""

	pattern = etherdaw.pattern.Transform(source="a", operations=(etherdaw.pattern.TransformStep("retrograde"),))
	result = etherdaw.expander.expand(pattern, make_context(patterns=one_bar_patterns))

	assert _pitches(result) == ["F4", "E4", "D4", "C4"]
	assert result.total_beats == 4.0


def test_missing_transform_source_warns (make_context, diagnostics) -> None:

	"""A missing source contributes nothing and is reported."""

	result = etherdaw.expander.expand(etherdaw.pattern.Transform(source="ghost"), make_context())

	assert (result.notes, result.total_beats) == ([], 0.0)
	assert diagnostics.messages() == ['Transform source pattern "ghost" not found']


def test_conditional_on_density (make_context, one_bar_patterns) -> None:

	"""Density picks the branch."""

	pattern = etherdaw.pattern.Conditional(
		condition = etherdaw.pattern.Condition("density", ">", 0.5),
		then = "a",
		otherwise = "b",
	)

	busy = etherdaw.expander.expand(pattern, make_context(patterns=one_bar_patterns, density=0.8))
	sparse = etherdaw.expander.expand(pattern, make_context(patterns=one_bar_patterns, density=0.2))

	assert _pitches(busy)[0] == "C4"
	assert _pitches(sparse)[0] == "G4"


def test_conditional_on_section_index (make_context, one_bar_patterns) -> None:

	"""Without an else branch a false condition still plays the then branch."""

	pattern = etherdaw.pattern.Conditional(condition=etherdaw.pattern.Condition("section_index", "==", 1), then="c")
	result = etherdaw.expander.expand(pattern, make_context(patterns=one_bar_patterns, section_index=0))

	assert _pitches(result)[0] == "C3"


def test_missing_conditional_target_warns (make_context, diagnostics) -> None:

	"""An unknown target is reported and contributes nothing."""

	pattern = etherdaw.pattern.Conditional(condition=etherdaw.pattern.Condition("density", "<", 1.0), then="nowhere")
	result = etherdaw.expander.expand(pattern, make_context())

	assert result.notes == []
	assert diagnostics.messages() == ['Conditional pattern target "nowhere" not found']


def test_reference_cycle_is_reported (make_context, diagnostics) -> None:

	"""Patterns that refer to each other stop with a warning instead of recursing forever."""

	patterns = {
		"x": etherdaw.pattern.Inherit(parent="y"),
		"y": etherdaw.pattern.Inherit(parent="x"),
	}

	result = etherdaw.expander.expand(patterns["x"], make_context(patterns=patterns))

	assert result.notes == []
	assert len(diagnostics) == 1
	assert "refers back to itself" in diagnostics.messages()[0]


def test_inheritance_shifts_parent (make_context, one_bar_patterns) -> None:

	"""Transpose and octave overrides move the parent's notes."""

	pattern = etherdaw.pattern.Inherit(parent="a", transpose=2, octave=1)
	result = etherdaw.expander.expand(pattern, make_context(patterns=one_bar_patterns))

	assert _pitches(result) == ["D5", "E5", "F#5", "G5"]


def test_inheritance_replaces_notes (make_context) -> None:

	"""Overridden notes keep the parent's envelope."""

	patterns = {"lead": etherdaw.pattern.NoteList(notes=("C4:q",), envelope="diminuendo")}
	pattern = etherdaw.pattern.Inherit(parent="lead", notes=("E4:q", "G4:q", "B4:q"))
	result = etherdaw.expander.expand(pattern, make_context(patterns=patterns))

	assert _pitches(result) == ["E4", "G4", "B4"]
	assert result.notes[0].velocity > result.notes[2].velocity


def test_missing_parent_warns (make_context, diagnostics) -> None:

	"""A missing parent is reported."""

	etherdaw.expander.expand(etherdaw.pattern.Inherit(parent="nobody"), make_context())

	assert diagnostics.messages() == ['Pattern inheritance: parent pattern "nobody" not found']


def test_continuation (make_context, one_bar_patterns) -> None:

	"""A continuation extends its source's notes."""

	pattern = etherdaw.pattern.Continuation(source="a", technique="ascending_sequence", steps=2, interval=2)
	result = etherdaw.expander.expand(pattern, make_context(patterns=one_bar_patterns))

	assert result.total_beats == 8.0
	assert _pitches(result)[4:] == ["D4", "E4", "F#4", "G4"]


def test_continuation_of_chords_warns (make_context, diagnostics) -> None:

	"""Sources without note tokens are reported."""

	patterns = {"pad": etherdaw.pattern.ChordList(chords=("C:w",))}
	result = etherdaw.expander.expand(etherdaw.pattern.Continuation(source="pad"), make_context(patterns=patterns))

	assert result.notes == []
	assert diagnostics.messages() == ['Continuation source pattern "pad" not found or has no notes']


def test_sequential_parts (make_context) -> None:

	"""Parts are laid end to end."""

	pattern = etherdaw.pattern.Sequential(parts=(
		etherdaw.pattern.NoteList(notes=("C4:h",)),
		etherdaw.pattern.Rest(duration="q"),
		etherdaw.pattern.ChordList(chords=("C:q",)),
	))
	result = etherdaw.expander.expand(pattern, make_context())

	assert result.total_beats == 4.0
	assert _starts(result) == [0.0, 3.0, 3.0, 3.0]
