"""Resolve tracks and sections into beat-scheduled notes.

A track plays one or more named patterns, optionally repeated. Patterns are
laid end to end using each pattern's own ``total_beats``: three one-bar
patterns land at beats 0, 4 and 8, and a two-bar pattern followed by a
one-bar pattern puts the second at beat 8.

A section fills every track to its length by tiling the track's scheduled
block, or cuts it short when the block is longer. Swing and humanize are
applied after tiling, to the tiled notes, so each repetition gets its own
jitter and jitter is never applied twice to the same note.
"""

import dataclasses
import logging
import random
import typing

import etherdaw.diagnostics
import etherdaw.expander
import etherdaw.groove
import etherdaw.notation
import etherdaw.pattern
import etherdaw.score
import etherdaw.swing


logger = logging.getLogger(__name__)

Note = etherdaw.pattern.Note


@dataclasses.dataclass
class ResolutionContext:

	"""
	What a track needs from its section and score.

	Attributes:
		patterns: Named patterns of the score.
		settings: Running settings (tempo, key and time signature in force).
		rng: Random source; each track draws its own generator from it.
		diagnostics: Receives missing patterns and malformed tokens.
		section: Section name, used as the diagnostic source.
		section_index: Position of the section in the arrangement.
		density: Section density, for conditional patterns.
	"""

	patterns: typing.Mapping[str, etherdaw.pattern.Pattern]
	settings: etherdaw.score.Settings = dataclasses.field(default_factory=etherdaw.score.Settings)
	rng: random.Random = dataclasses.field(default_factory=random.Random)
	diagnostics: etherdaw.diagnostics.Diagnostics = dataclasses.field(default_factory=etherdaw.diagnostics.Diagnostics)
	section: typing.Optional[str] = None
	section_index: int = 0
	density: float = 0.5

	@property
	def beats_per_bar (self) -> float:

		return etherdaw.notation.beats_per_bar(self.settings.time_signature)


def _pattern_context (track: etherdaw.score.Track, context: ResolutionContext, rng: random.Random, name: str) -> etherdaw.expander.PatternContext:

	return etherdaw.expander.PatternContext(
		key = context.settings.key,
		tempo = context.settings.tempo,
		velocity = track.velocity,
		octave = track.octave,
		transpose = track.transpose,
		patterns = context.patterns,
		rng = rng,
		diagnostics = context.diagnostics,
		density = context.density,
		section_index = context.section_index,
		beats_per_bar = context.beats_per_bar,
		source = name,
	)


def _missing_pattern (name: str, section: typing.Optional[str], instrument: typing.Optional[str]) -> str:

	if section is not None and instrument is not None:
		return f'Section "{section}" track "{instrument}" references unknown pattern: "{name}"'

	return f"Pattern not found: {name}"


def schedule_track (
	track: etherdaw.score.Track,
	context: ResolutionContext,
	rng: typing.Optional[random.Random] = None,
	instrument: typing.Optional[str] = None
) -> etherdaw.expander.ExpandedPattern:

	"""
	Lay out a track's patterns sequentially, without swing or humanize.

	Each pattern starts where the previous one ended (its ``total_beats``),
	and the whole list is played ``track.repeat`` times. A missing pattern
	or a pattern with a malformed token is reported and skipped; it takes
	up no time.

	Returns:
		The scheduled notes and the block length in beats. Muted tracks and
		tracks without patterns give an empty block.

	Example:
		```python
		track = Track(patterns=["a", "b", "c"])   # each one bar long
		block = schedule_track(track, context)
		sorted({n.start for n in block.notes})   # [0.0, 4.0, 8.0]
		block.total_beats                        # 12.0
		```
	"""

	if track.mute or not track.pattern_names:
		return etherdaw.expander.ExpandedPattern([], 0.0)

	rng = rng if rng is not None else context.rng
	notes: typing.List[Note] = []
	beat = 0.0

	for _ in range(track.repeat):
		for name in track.pattern_names:
			pattern = context.patterns.get(name)

			if pattern is None:
				context.diagnostics.warn(_missing_pattern(name, context.section, instrument), source=context.section)
				continue

			try:
				expanded = etherdaw.expander.expand(pattern, _pattern_context(track, context, rng, name))
			except ValueError as exc:
				context.diagnostics.error(f'Pattern "{name}": {exc}', source=context.section)
				continue

			notes.extend(note.moved(beat) for note in expanded.notes)
			beat += expanded.total_beats

	return etherdaw.expander.ExpandedPattern(notes, beat)


def apply_feel (
	notes: typing.Iterable[Note],
	swing: float,
	humanize: typing.Union[float, typing.Mapping[str, float], etherdaw.groove.Humanize],
	rng: random.Random,
	groove: typing.Optional[str] = None,
	groove_amount: float = 1.0
) -> typing.List[Note]:

	"""
	Apply the groove template, then swing, then humanize.

	Starts stay non-negative and velocities stay within 0-1.
	"""

	result = list(notes)

	if groove is not None and groove_amount > 0:
		result = etherdaw.groove.apply_groove(result, groove, groove_amount)

	if swing > 0:
		result = etherdaw.swing.apply_swing(result, swing)

	result = etherdaw.groove.humanize(result, humanize, rng)

	return [
		dataclasses.replace(note, start=max(0.0, note.start), velocity=min(1.0, max(0.0, note.velocity)))
		for note in result
	]


def resolve_track (track: etherdaw.score.Track, context: ResolutionContext) -> typing.List[Note]:

	"""
	Resolve a track into notes at its natural length, with swing and humanize applied.
	"""

	rng = random.Random(context.rng.getrandbits(64))
	block = schedule_track(track, context, rng)
	groove, humanize = track.feel()

	return apply_feel(block.notes, context.settings.swing, humanize, rng, groove, track.groove_amount)


def fill_to_length (block: etherdaw.expander.ExpandedPattern, target_beats: float) -> typing.List[Note]:

	"""
	Repeat a block cyclically to cover ``target_beats``, or cut it short.

	The repeating unit is the block's ``total_beats``. A block that reports
	no length (only possible when every pattern in it was empty) uses the
	end of its last note, and at least one beat. Notes starting at or after
	the target are dropped.

	Example:
		```python
		block = ExpandedPattern(notes=[Note("C4", 0.0, 1.0, 0.8)], total_beats=4.0)
		[n.start for n in fill_to_length(block, 16.0)]  # [0.0, 4.0, 8.0, 12.0]
		```
	"""

	if not block.notes or target_beats <= 0:
		return []

	unit = block.total_beats

	if unit <= 0:
		unit = max(max(note.end for note in block.notes), 1.0)

	if unit >= target_beats:
		return [note for note in block.notes if note.start < target_beats]

	result = []
	repetitions = 0

	while repetitions * unit < target_beats:
		offset = repetitions * unit

		for note in block.notes:
			if note.start + offset >= target_beats:
				continue
			result.append(note.moved(offset))

		repetitions += 1

	return result


def resolve_section (
	section: etherdaw.score.Section,
	context: ResolutionContext
) -> typing.Dict[str, typing.List[Note]]:

	"""
	Resolve every track of a section to exactly the section's length.

	Each track is scheduled, tiled or truncated to ``bars * beats_per_bar``
	and only then swung and humanized.

	Returns:
		Notes per instrument name, in track order. Muted tracks map to an
		empty list.
	"""

	section_beats = section.bars * context.beats_per_bar
	result = {}

	for instrument, track in section.tracks.items():
		rng = random.Random(context.rng.getrandbits(64))
		block = schedule_track(track, context, rng, instrument)

		if block.notes and block.total_beats < section_beats:
			logger.debug(f"Filling {instrument} from {block.total_beats} to {section_beats} beats")

		filled = fill_to_length(block, section_beats)
		groove, humanize = track.feel()
		result[instrument] = apply_feel(filled, context.settings.swing, humanize, rng, groove, track.groove_amount)

	return result


def quantize_notes (notes: typing.Iterable[Note], grid: float, strength: float = 1.0) -> typing.List[Note]:

	"""
	Pull note starts towards the nearest grid line.

	Parameters:
		grid: Grid size in beats (0.25 for sixteenths).
		strength: 1.0 snaps fully, 0.5 moves halfway.
	"""

	if grid <= 0:
		raise ValueError("Quantize grid must be positive")

	result = []

	for note in notes:
		target = round(note.start / grid) * grid
		result.append(dataclasses.replace(note, start=note.start + (target - note.start) * strength))

	return result


def transpose_notes (notes: typing.Iterable[Note], semitones: int) -> typing.List[Note]:

	"""Shift every pitched note; drum notes are left alone."""

	if semitones == 0:
		return list(notes)

	return [
		note if note.is_drum else dataclasses.replace(note, pitch=etherdaw.notation.transpose_pitch(note.pitch, semitones))
		for note in notes
	]
