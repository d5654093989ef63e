import random

import pytest

import etherdaw.expander
import etherdaw.pattern
import etherdaw.resolver
import etherdaw.score


@pytest.fixture
def context (one_bar_patterns, diagnostics) -> etherdaw.resolver.ResolutionContext:

	"""A resolution context over the three one-bar patterns."""

	return etherdaw.resolver.ResolutionContext(
		patterns = one_bar_patterns,
		rng = random.Random(1),
		diagnostics = diagnostics,
		section = "verse",
	)


def test_patterns_are_laid_end_to_end (context) -> None:

	"""Three one-bar patterns start on beats 0, 4 and 8."""

	block = etherdaw.resolver.schedule_track(etherdaw.score.Track(patterns=["a", "b", "c"]), context)

	assert block.total_beats == 12.0
	assert [note.pitch for note in block.notes if note.start in (0.0, 4.0, 8.0)] == ["C4", "G4", "C3"]


def test_pattern_length_comes_from_the_pattern (context) -> None:

	"""A two-bar pattern pushes the next one to beat 8."""

	context.patterns = dict(context.patterns, long=etherdaw.pattern.from_dict({"notes": "C4:w D4:w"}))
	block = etherdaw.resolver.schedule_track(etherdaw.score.Track(patterns=["long", "a"]), context)

	assert [note.start for note in block.notes][2] == 8.0


def test_repeat_plays_the_list_again (context) -> None:

	"""The second repeat of [a, b] starts at beat 8."""

	block = etherdaw.resolver.schedule_track(etherdaw.score.Track(patterns=["a", "b"], repeat=2), context)

	assert block.total_beats == 16.0
	assert block.notes[8].start == 8.0
	assert block.notes[8].pitch == "C4"


def test_muted_and_empty_tracks (context) -> None:

	"""Muted tracks and tracks without patterns are empty."""

	assert etherdaw.resolver.schedule_track(etherdaw.score.Track(pattern="a", mute=True), context).notes == []
	assert etherdaw.resolver.schedule_track(etherdaw.score.Track(), context).total_beats == 0.0


def test_missing_pattern_warns_and_takes_no_time (context, diagnostics) -> None:

	"""A missing pattern is reported and the next pattern starts where it would have."""

	block = etherdaw.resolver.schedule_track(etherdaw.score.Track(patterns=["ghost", "b"]), context, instrument="piano")

	assert block.notes[0].start == 0.0
	assert block.notes[0].pitch == "G4"
	assert diagnostics.messages() == ['Section "verse" track "piano" references unknown pattern: "ghost"']


def test_malformed_pattern_is_an_error (context, diagnostics) -> None:

	"""Token errors inside a pattern become error diagnostics."""

	context.patterns = dict(context.patterns, broken=etherdaw.pattern.NoteList(notes=("C4:z",)))
	block = etherdaw.resolver.schedule_track(etherdaw.score.Track(patterns=["broken", "a"]), context)

	assert block.total_beats == 4.0
	assert diagnostics.has_errors()


def test_track_overrides_reach_patterns (context) -> None:

	"""Track velocity, octave and transpose apply to every note."""

	track = etherdaw.score.Track(pattern="a", velocity=0.5, octave=1, transpose=-1)
	block = etherdaw.resolver.schedule_track(track, context)

	assert block.notes[0].pitch == "B4"
	assert block.notes[0].velocity == 0.5


def test_fill_tiles_to_length () -> None:

	"""A one-bar block fills a four-bar section with four repetitions."""

	block = etherdaw.expander.ExpandedPattern([etherdaw.pattern.Note("C4", 0.0, 1.0, 0.8)], 4.0)

	assert [note.start for note in etherdaw.resolver.fill_to_length(block, 16.0)] == [0.0, 4.0, 8.0, 12.0]


def test_fill_truncates_long_blocks () -> None:

	"""Notes starting at or after the target are dropped."""

	notes = [etherdaw.pattern.Note("C4", float(beat), 1.0, 0.8) for beat in range(8)]
	block = etherdaw.expander.ExpandedPattern(notes, 8.0)

	assert len(etherdaw.resolver.fill_to_length(block, 4.0)) == 4


def test_fill_partial_repetition () -> None:

	"""A three-beat block in a four-beat target keeps only the notes that start in time."""

	notes = [etherdaw.pattern.Note("C4", 0.0, 1.0, 0.8), etherdaw.pattern.Note("D4", 2.0, 1.0, 0.8)]
	block = etherdaw.expander.ExpandedPattern(notes, 3.0)

	assert [note.start for note in etherdaw.resolver.fill_to_length(block, 4.0)] == [0.0, 2.0, 3.0]


def test_fill_without_length_uses_note_ends () -> None:

	"""A block that reports no length repeats by its last note end."""

	block = etherdaw.expander.ExpandedPattern([etherdaw.pattern.Note("C4", 0.0, 2.0, 0.8)], 0.0)

	assert [note.start for note in etherdaw.resolver.fill_to_length(block, 6.0)] == [0.0, 2.0, 4.0]
	assert etherdaw.resolver.fill_to_length(etherdaw.expander.EMPTY, 16.0) == []


def test_resolve_section_fills_every_track (context) -> None:

	"""Each track is tiled to the section length."""

	section = etherdaw.score.Section(
		bars = 4,
		tracks = {
			"piano": etherdaw.score.Track(pattern="a"),
			"bass": etherdaw.score.Track(patterns=["b", "c"]),
			"pad": etherdaw.score.Track(pattern="c", mute=True),
		},
	)

	result = etherdaw.resolver.resolve_section(section, context)

	assert len(result["piano"]) == 16
	assert len(result["bass"]) == 16
	assert result["pad"] == []
	assert max(note.start for note in result["piano"]) == 15.0


def test_resolve_section_is_repeatable (one_bar_patterns) -> None:

	"""The same seed gives the same humanized performance."""

	section = etherdaw.score.Section(bars=2, tracks={"piano": etherdaw.score.Track(pattern="a", humanize=0.5)})

	def _run () -> list:
		context = etherdaw.resolver.ResolutionContext(patterns=one_bar_patterns, rng=random.Random(9))
		return etherdaw.resolver.resolve_section(section, context)["piano"]

	first = _run()

	assert first == _run()
	assert [note.start for note in first] != [float(beat) for beat in range(8)]


def test_humanized_notes_stay_in_bounds (one_bar_patterns) -> None:

	"""Humanized starts never go negative and velocities stay within 0-1."""

	patterns = dict(one_bar_patterns, loud=etherdaw.pattern.from_dict({"notes": "C4:q@1 D4:q@1 E4:q@1 F4:q@1"}))
	section = etherdaw.score.Section(bars=8, tracks={"lead": etherdaw.score.Track(pattern="loud", humanize=1.0)})
	context = etherdaw.resolver.ResolutionContext(patterns=patterns, rng=random.Random(3))

	for note in etherdaw.resolver.resolve_section(section, context)["lead"]:
		assert note.start >= 0.0
		assert 0.0 <= note.velocity <= 1.0


def test_swing_applies_after_tiling () -> None:

	"""Off-beat eighths in every repetition are delayed."""

	patterns = {"eighths": etherdaw.pattern.from_dict({"notes": "C4:8 D4:8"})}
	settings = etherdaw.score.Settings(swing=1.0)
	context = etherdaw.resolver.ResolutionContext(patterns=patterns, settings=settings, rng=random.Random(1))
	section = etherdaw.score.Section(bars=1, tracks={"lead": etherdaw.score.Track(pattern="eighths")})

	starts = [note.start for note in etherdaw.resolver.resolve_section(section, context)["lead"]]

	assert starts[0::2] == [0.0, 1.0, 2.0, 3.0]
	assert starts[1::2] == pytest.approx([0.5 + 1 / 6, 1.5 + 1 / 6, 2.5 + 1 / 6, 3.5 + 1 / 6])


def test_groove_and_expression () -> None:

	"""A track groove shapes timing; an expression preset supplies one when the track has none."""

	patterns = {"sixteenths": etherdaw.pattern.from_dict({"notes": "C4:16 C4:16 C4:16 C4:16"})}
	context = etherdaw.resolver.ResolutionContext(patterns=patterns, rng=random.Random(1))
	section = etherdaw.score.Section(bars=1, tracks={"hats": etherdaw.score.Track(pattern="sixteenths", groove="shuffle")})

	starts = [note.start for note in etherdaw.resolver.resolve_section(section, context)["hats"]]

	assert starts[:4] == pytest.approx([0.0, 0.33, 0.5, 0.83])

	track = etherdaw.score.Track(pattern="a", expression="jazzy")

	assert track.feel()[0] == "dilla"
	assert track.feel()[1].velocity == pytest.approx(1.0)


def test_resolve_track_keeps_natural_length (context) -> None:

	"""Without a section the track plays once."""

	notes = etherdaw.resolver.resolve_track(etherdaw.score.Track(patterns=["a", "b"]), context)

	assert len(notes) == 8


def test_quantize_and_transpose_helpers () -> None:

	"""Quantize pulls towards the grid; transpose skips drums."""

	notes = [etherdaw.pattern.Note("C4", 0.3, 0.5, 0.8), etherdaw.pattern.Note("drum:kick@909", 0.0, 0.25, 1.0)]

	assert etherdaw.resolver.quantize_notes(notes, 0.25)[0].start == pytest.approx(0.25)
	assert etherdaw.resolver.quantize_notes(notes, 0.5, strength=0.5)[0].start == pytest.approx(0.4)
	assert [note.pitch for note in etherdaw.resolver.transpose_notes(notes, 3)] == ["D#4", "drum:kick@909"]

	with pytest.raises(ValueError):
		etherdaw.resolver.quantize_notes(notes, 0.0)
