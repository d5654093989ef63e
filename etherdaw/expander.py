"""Expand a pattern into beat-positioned notes.

``expand(pattern, context)`` matches on the pattern variant and returns an
``ExpandedPattern``: notes positioned from beat 0, plus ``total_beats``, the
length used when patterns are laid end to end. ``total_beats`` always comes
from the pattern itself (the sum of its token durations, its step count, its
bar count), never from the section it is played in.

The context carries everything outside the pattern: the key and tempo, the
track's octave/transpose/velocity overrides, the other named patterns (for
transforms, inheritance, conditionals and continuations), the random source
and the diagnostics collector. Octave and transpose are applied to every
pitched note after expansion; drum notes are never shifted.

Problems with references (a missing transform source, a conditional target
that does not exist) are recorded as warnings and the pattern contributes
nothing. Malformed tokens raise ``NoteParseError`` / ``ChordParseError``.
"""

import dataclasses
import logging
import operator
import random
import re
import typing

import etherdaw.chords
import etherdaw.constants
import etherdaw.constants.durations
import etherdaw.constants.velocity
import etherdaw.continuation
import etherdaw.diagnostics
import etherdaw.intervals
import etherdaw.markov_chain
import etherdaw.notation
import etherdaw.pattern
import etherdaw.sequence_utils
import etherdaw.transforms
import etherdaw.voicings


logger = logging.getLogger(__name__)

Note = etherdaw.pattern.Note

_DEGREE_PATTERN = re.compile(r"^(\d+)([#b]?)([+-]?)(?::(\d+|[whq])(\.?))?$")
_LEGACY_DEGREE_PATTERN = re.compile(r"^([#b]?)(\d+)$")

_OPERATORS: typing.Dict[str, typing.Callable[[float, float], bool]] = {
	">": operator.gt,
	"<": operator.lt,
	">=": operator.ge,
	"<=": operator.le,
	"==": operator.eq,
	"!=": operator.ne,
}


@dataclasses.dataclass
class ExpandedPattern:

	notes: typing.List[Note]
	total_beats: float

	def moved (self, offset: float) -> "ExpandedPattern":

		return ExpandedPattern([note.moved(offset) for note in self.notes], self.total_beats)


EMPTY = ExpandedPattern([], 0.0)


@dataclasses.dataclass
class PatternContext:

	"""
	Everything a pattern needs from the world around it.

	Attributes:
		key: Active key, used by degrees, Markov patterns and ``constrain_to_scale``.
		tempo: Active tempo in BPM.
		velocity: Track velocity (0-1), the base for notes without their own.
		octave: Octaves to shift every pitched note.
		transpose: Semitones to shift every pitched note.
		patterns: All named patterns, for references between patterns.
		rng: Random source for Markov walks, random arpeggios and
			probability conditions.
		diagnostics: Receives non-fatal problems.
		density: Section density (0-1) for ``density`` conditions.
		section_index: Position of the section in the arrangement.
		beats_per_bar: Bar length used by drum patterns with ``bars`` set.
		source: Name of the pattern being expanded, for diagnostics.
	"""

	key: str = etherdaw.constants.DEFAULT_KEY
	tempo: float = etherdaw.constants.DEFAULT_TEMPO
	velocity: float = etherdaw.constants.velocity.DEFAULT_VELOCITY
	octave: int = 0
	transpose: int = 0
	patterns: typing.Mapping[str, etherdaw.pattern.Pattern] = dataclasses.field(default_factory=dict)
	rng: random.Random = dataclasses.field(default_factory=random.Random)
	diagnostics: etherdaw.diagnostics.Diagnostics = dataclasses.field(default_factory=etherdaw.diagnostics.Diagnostics)
	density: float = 0.5
	section_index: int = 0
	beats_per_bar: float = 4.0
	source: typing.Optional[str] = None

	@property
	def shift (self) -> int:

		return self.octave * 12 + self.transpose


	def warn (self, message: str) -> None:

		self.diagnostics.warn(message, source=self.source)


def expand (pattern: etherdaw.pattern.Pattern, context: typing.Optional[PatternContext] = None) -> ExpandedPattern:

	"""
	Expand one pattern.

	Parameters:
		pattern: Any pattern variant.
		context: Key, overrides, named patterns and random source. A default
			context (C major, no overrides, unseeded) is used when omitted.

	Returns:
		The notes and the pattern's length in beats.

	Raises:
		NoteParseError: A note token is malformed.
		ChordParseError: A chord token is malformed or has an unknown quality.

	Example:
		```python
		result = expand(etherdaw.pattern.NoteList(notes=("C4:q", "r:q", "E4:h")))
		result.total_beats           # 4.0
		[n.start for n in result.notes]  # [0.0, 2.0]
		```
	"""

	return _expand(pattern, context or PatternContext(), ())


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def _expand (pattern: etherdaw.pattern.Pattern, context: PatternContext, trail: typing.Tuple[str, ...]) -> ExpandedPattern:

	if isinstance(pattern, etherdaw.pattern.Conditional):
		result = _conditional(pattern, context, trail)
	elif isinstance(pattern, etherdaw.pattern.Inherit):
		result = _inherit(pattern, context, trail)
	elif isinstance(pattern, etherdaw.pattern.Transform):
		result = _transform(pattern, context, trail)
	elif isinstance(pattern, etherdaw.pattern.Continuation):
		result = _continuation(pattern, context, trail)
	elif isinstance(pattern, etherdaw.pattern.Sequential):
		result = _sequential(pattern, context, trail)
	else:
		result = _shifted(_expand_leaf(pattern, context), context.shift)

	return _finish(pattern, result, context)


def _expand_leaf (pattern: etherdaw.pattern.Pattern, context: PatternContext) -> ExpandedPattern:

	if isinstance(pattern, etherdaw.pattern.NoteList):
		return expand_tokens(pattern.notes, context)
	if isinstance(pattern, etherdaw.pattern.ChordList):
		return expand_chords(pattern.chords, context)
	if isinstance(pattern, etherdaw.pattern.Degrees):
		return expand_degrees(pattern, context)
	if isinstance(pattern, etherdaw.pattern.Arpeggio):
		return expand_arpeggio(pattern, context)
	if isinstance(pattern, etherdaw.pattern.Drums):
		return expand_drums(pattern, context)
	if isinstance(pattern, etherdaw.pattern.Euclidean):
		return expand_euclidean(pattern, context)
	if isinstance(pattern, etherdaw.pattern.Markov):
		return expand_markov(pattern, context)
	if isinstance(pattern, etherdaw.pattern.VoiceLead):
		return expand_voice_lead(pattern, context)
	if isinstance(pattern, etherdaw.pattern.Tuplet):
		return expand_tokens(pattern.notes, context, scale=pattern.ratio[1] / pattern.ratio[0])
	if isinstance(pattern, etherdaw.pattern.Rest):
		return ExpandedPattern([], etherdaw.notation.parse_duration_string(pattern.duration.split(":")[-1]))

	raise TypeError(f"Cannot expand {type(pattern).__name__}")


def _shifted (result: ExpandedPattern, semitones: int) -> ExpandedPattern:

	if semitones == 0:
		return result

	notes = [
		note if note.is_drum else dataclasses.replace(note, pitch=etherdaw.notation.transpose_pitch(note.pitch, semitones))
		for note in result.notes
	]

	return ExpandedPattern(notes, result.total_beats)


def _finish (pattern: etherdaw.pattern.Pattern, result: ExpandedPattern, context: PatternContext) -> ExpandedPattern:

	"""
	Apply the pattern's velocity envelope, then its scale constraint.

	Markov patterns are skipped: they constrain their own pitches while
	generating, against their chord scale when they have one.
	"""

	notes = result.notes

	if pattern.envelope is not None:
		try:
			notes = etherdaw.transforms.apply_envelope(notes, pattern.envelope, context.velocity)
		except ValueError as exc:
			context.warn(str(exc))

	if pattern.constrain_to_scale and not isinstance(pattern, etherdaw.pattern.Markov):
		notes = [
			note if note.is_drum else dataclasses.replace(note, pitch=etherdaw.intervals.snap_to_scale(note.pitch, context.key))
			for note in notes
		]

	return ExpandedPattern(notes, result.total_beats)


def _lookup (
	name: str,
	context: PatternContext,
	trail: typing.Tuple[str, ...],
	missing: str
) -> typing.Optional[etherdaw.pattern.Pattern]:

	if name in trail:
		context.warn(f'Pattern "{name}" refers back to itself via {" -> ".join(trail + (name,))}')
		return None

	found = context.patterns.get(name)

	if found is None:
		context.warn(missing)

	return found


# ---------------------------------------------------------------------------
# Token kinds
# ---------------------------------------------------------------------------

def expand_tokens (
	tokens: typing.Sequence[str],
	context: PatternContext,
	scale: float = 1.0
) -> ExpandedPattern:

	"""
	Lay out note tokens one after another.

	Rests advance time without a note. Each note sounds for its duration
	times the articulation gate, but time advances by the full written
	duration. ``scale`` compresses everything (tuplets).
	"""

	notes = []
	beat = 0.0

	for token in tokens:
		if etherdaw.notation.is_bar(token):
			continue

		parsed = etherdaw.notation.parse_token(token)
		length = parsed.duration * scale

		if not parsed.is_rest:
			base = parsed.velocity if parsed.velocity is not None else context.velocity
			notes.append(Note(
				pitch = parsed.pitch,
				start = beat,
				duration = length * parsed.gate,
				velocity = min(1.0, base + parsed.velocity_boost),
				timing_offset = parsed.timing_offset,
				probability = parsed.probability,
				portamento = parsed.portamento,
				jazz = parsed.jazz,
				bend = parsed.bend,
				ornament = parsed.ornament,
			))

		beat += length

	return ExpandedPattern(notes, beat)


def expand_chords (tokens: typing.Sequence[str], context: PatternContext) -> ExpandedPattern:

	"""Every chord tone starts together; velocity is the track's plus any accent."""

	notes = []
	beat = 0.0

	for token in tokens:
		if etherdaw.notation.is_bar(token):
			continue

		chord = etherdaw.chords.parse_chord(token, diagnostics=context.diagnostics)
		velocity = min(1.0, context.velocity + chord.velocity_boost)

		for pitch in chord.notes:
			notes.append(Note(pitch=pitch, start=beat, duration=chord.duration * chord.gate, velocity=velocity))

		beat += chord.duration

	return ExpandedPattern(notes, beat)


def parse_degree (degree: str) -> typing.Tuple[int, int, int, typing.Optional[str]]:

	"""
	Split a degree token into (degree, alteration, octave shift, duration).

	Accepts ``"5"``, ``"3b"``, ``"1+"``, ``"2#-:8."`` and the prefix form
	``"b7"``.

	Raises:
		NoteParseError: The token is not a degree.
	"""

	match = _DEGREE_PATTERN.match(degree)

	if match:
		number, accidental, octave_mark, code, dot = match.groups()
		return (
			int(number),
			{"#": 1, "b": -1}.get(accidental, 0),
			{"+": 1, "-": -1}.get(octave_mark, 0),
			code + dot if code else None,
		)

	legacy = _LEGACY_DEGREE_PATTERN.match(degree)

	if legacy:
		return int(legacy.group(2)), {"#": 1, "b": -1}.get(legacy.group(1), 0), 0, None

	raise etherdaw.notation.NoteParseError(f"Invalid degree: {degree!r}")


def expand_degrees (pattern: etherdaw.pattern.Degrees, context: PatternContext) -> ExpandedPattern:

	"""
	Render scale degrees in the active key from octave 4.

	Degrees without an inline duration take the next rhythm entry (cycled);
	an inline duration does not consume a rhythm entry.
	"""

	notes = []
	beat = 0.0
	rhythm_index = 0

	for degree in pattern.degrees:
		number, alteration, octave_shift, inline = parse_degree(degree)

		if inline is None:
			duration = etherdaw.notation.parse_duration_string(pattern.rhythm[rhythm_index % len(pattern.rhythm)])
			rhythm_index += 1
		else:
			duration = etherdaw.notation.parse_duration_string(inline)

		midi = etherdaw.intervals.degree_to_midi(
			context.key,
			number,
			etherdaw.constants.DEFAULT_NOTE_OCTAVE + octave_shift,
			alteration,
		)

		notes.append(Note(pitch=etherdaw.notation.midi_to_pitch(midi), start=beat, duration=duration, velocity=context.velocity))
		beat += duration

	return ExpandedPattern(notes, beat)


# ---------------------------------------------------------------------------
# Generated kinds
# ---------------------------------------------------------------------------

def arpeggio_indices (
	tone_count: int,
	mode: str,
	octaves: int,
	steps: typing.Optional[int],
	rng: random.Random
) -> typing.List[int]:

	"""
	1-based chord-tone indices for an arpeggio; indices past the chord
	continue into the next octave.

	Example:
		```python
		arpeggio_indices(3, "updown", 1, None, rng)  # [1, 2, 3, 2]
		arpeggio_indices(3, "up", 1, 8, rng)         # [1, 2, 3, 1, 2, 3, 1, 2]
		```
	"""

	indices = list(range(1, tone_count * octaves + 1))

	if mode == "random":
		return [rng.choice(indices) for _ in range(steps if steps is not None else len(indices))]

	if mode == "up":
		cycle = indices
	elif mode == "down":
		cycle = indices[::-1]
	elif mode == "updown":
		cycle = indices + indices[1:-1][::-1]
	else:
		cycle = indices[::-1] + indices[1:-1]

	if steps is not None:
		return [cycle[i % len(cycle)] for i in range(steps)]

	return cycle


def expand_arpeggio (pattern: etherdaw.pattern.Arpeggio, context: PatternContext) -> ExpandedPattern:

	"""
	Break a chord into single notes at a fixed step duration.

	Without ``steps`` (or an explicit index ``pattern``) the arpeggio's
	length is undefined; a warning is recorded and the mode's natural cycle
	is played once.
	"""

	tones = etherdaw.chords.get_chord_notes(pattern.chord, etherdaw.constants.DEFAULT_CHORD_OCTAVE, context.diagnostics)
	step = etherdaw.notation.parse_duration_string(pattern.duration)

	if pattern.pattern:
		indices = list(pattern.pattern)
	else:
		if pattern.steps is None:
			context.warn(f'Arpeggio on "{pattern.chord}" has no steps; set steps to fix its length')
		indices = arpeggio_indices(len(tones), pattern.mode, pattern.octaves, pattern.steps, context.rng)

	notes = []

	for i, index in enumerate(indices):
		octave, position = divmod(index - 1, len(tones))
		pitch = etherdaw.notation.transpose_pitch(tones[position], octave * 12)
		notes.append(Note(pitch=pitch, start=i * step, duration=step * pattern.gate, velocity=context.velocity))

	return ExpandedPattern(notes, len(indices) * step)


def parse_drum_time (text: str) -> float:

	"""Beats for a compound time such as ``"h+8"`` (2.5) or a plain number."""

	total = 0.0

	for part in str(text).split("+"):
		part = part.strip()

		if part in etherdaw.constants.durations.DURATION_CODES:
			total += etherdaw.constants.durations.DURATION_CODES[part]
		elif part:
			try:
				total += float(part)
			except ValueError as exc:
				raise etherdaw.notation.NoteParseError(f"Invalid drum hit time: {text!r}") from exc

	return total


def expand_drums (pattern: etherdaw.pattern.Drums, context: PatternContext) -> ExpandedPattern:

	"""
	Step-sequenced drum lines plus explicitly timed hits.

	``x``/``X`` plays at 80% of the track velocity, ``>`` is a full-velocity
	accent. Length: ``bars`` when given, else whichever ends later of the
	longest line and the last timed hit. Hits without lines round up to at
	least one bar.
	"""

	step = etherdaw.notation.parse_duration_string(pattern.step)
	notes = []
	longest = 0

	for drum, steps in pattern.lines:
		pitch = f"drum:{drum}@{pattern.kit}"
		longest = max(longest, len(steps))

		for i, char in enumerate(steps):
			if char in ("x", "X"):
				velocity = context.velocity * etherdaw.constants.velocity.DRUM_HIT_SCALE
			elif char == ">":
				velocity = etherdaw.constants.velocity.DRUM_ACCENT_VELOCITY
			else:
				continue
			notes.append(Note(pitch=pitch, start=i * step, duration=step, velocity=velocity))

	hit_times = []

	for hit in pattern.hits:
		time = parse_drum_time(hit.time)
		hit_times.append(time)
		velocity = hit.velocity if hit.velocity is not None else context.velocity
		notes.append(Note(pitch=f"drum:{hit.drum}@{pattern.kit}", start=time, duration=step, velocity=velocity))

	if pattern.bars is not None:
		total = pattern.bars * context.beats_per_bar
		notes = [note for note in notes if note.start < total]
	elif longest:
		total = max([longest * step] + [time + step for time in hit_times])
	elif hit_times:
		total = max(max(hit_times) + step, context.beats_per_bar)
	else:
		total = 0.0

	notes.sort(key=lambda note: note.start)

	return ExpandedPattern(notes, total)


def expand_euclidean (pattern: etherdaw.pattern.Euclidean, context: PatternContext) -> ExpandedPattern:

	"""One note per Euclidean hit: a drum, a fixed pitch, or C4."""

	step = etherdaw.notation.parse_duration_string(pattern.duration)
	hits = etherdaw.sequence_utils.generate_euclidean(pattern.hits, pattern.steps, pattern.rotation)

	if pattern.drum:
		pitch = f"drum:{pattern.drum}@{pattern.kit}"
	else:
		pitch = pattern.pitch or "C4"

	notes = [
		Note(pitch=pitch, start=index * step, duration=step, velocity=context.velocity)
		for index in etherdaw.sequence_utils.pattern_to_steps(hits)
	]

	return ExpandedPattern(notes, pattern.steps * step)


def expand_markov (pattern: etherdaw.pattern.Markov, context: PatternContext) -> ExpandedPattern:

	"""
	Walk the chain; generated velocities are scaled by the track velocity.

	The length is every step's duration, so a walk that ends on rests
	still fills its steps.
	"""

	generated = etherdaw.markov_chain.generate(pattern, context.key, context.rng, context.diagnostics)
	notes = [dataclasses.replace(note, velocity=note.velocity * context.velocity) for note in generated]

	if not pattern.states:
		return ExpandedPattern(notes, 0.0)

	durations = [pattern.duration] if isinstance(pattern.duration, str) else list(pattern.duration)
	total = sum(etherdaw.notation.parse_duration_string(durations[i % len(durations)]) for i in range(pattern.steps))

	return ExpandedPattern(notes, total)


def expand_voice_lead (pattern: etherdaw.pattern.VoiceLead, context: PatternContext) -> ExpandedPattern:

	"""
	One voiced chord per progression entry.

	Entries are bare symbols lasting ``chord_beats`` or chord tokens with
	their own duration (``"Dm7:h"``).
	"""

	symbols = []
	lengths = []

	for entry in pattern.progression:
		if ":" in entry:
			symbol = entry.split(":", 1)[0]
			lengths.append(etherdaw.chords.parse_chord(entry).duration)
		else:
			symbol = entry
			lengths.append(pattern.chord_beats)
		symbols.append(symbol)

	result = etherdaw.voicings.voice_lead(
		symbols,
		voices = pattern.voices,
		style = pattern.style,
		constraints = pattern.constraints,
		ranges = pattern.voice_ranges,
		diagnostics = context.diagnostics,
	)

	notes = []
	beat = 0.0

	for voicing, length in zip(result.voicings, lengths):
		for pitch in voicing.notes:
			notes.append(Note(pitch=pitch, start=beat, duration=length, velocity=context.velocity))
		beat += length

	return ExpandedPattern(notes, beat)


# ---------------------------------------------------------------------------
# Referencing kinds
# ---------------------------------------------------------------------------

def evaluate_condition (condition: etherdaw.pattern.Condition, context: PatternContext) -> bool:

	"""Compare ``density``, a fresh random draw or the section index against the condition's value."""

	if condition.kind == "density":
		value = context.density
	elif condition.kind == "probability":
		value = context.rng.random()
	else:
		value = float(context.section_index)

	return _OPERATORS[condition.operator](value, condition.value)


def _conditional (pattern: etherdaw.pattern.Conditional, context: PatternContext, trail: typing.Tuple[str, ...]) -> ExpandedPattern:

	name = pattern.then if evaluate_condition(pattern.condition, context) else (pattern.otherwise or pattern.then)
	target = _lookup(name, context, trail, f'Conditional pattern target "{name}" not found')

	if target is None:
		return EMPTY

	return _expand(target, context, trail + (name,))


def _inherit (pattern: etherdaw.pattern.Inherit, context: PatternContext, trail: typing.Tuple[str, ...]) -> ExpandedPattern:

	parent = _lookup(pattern.parent, context, trail, f'Pattern inheritance: parent pattern "{pattern.parent}" not found')

	if parent is None:
		return EMPTY

	if pattern.notes is not None:
		parent = etherdaw.pattern.NoteList(notes=pattern.notes, envelope=parent.envelope, constrain_to_scale=parent.constrain_to_scale)

	shifted = dataclasses.replace(
		context,
		octave = context.octave + pattern.octave,
		transpose = context.transpose + pattern.transpose,
	)

	return _expand(parent, shifted, trail + (pattern.parent,))


def _source_tokens (
	name: str,
	context: PatternContext,
	trail: typing.Tuple[str, ...],
	missing: str
) -> typing.Optional[typing.List[str]]:

	"""The note tokens a named pattern stands for, following transforms and inheritance."""

	source = _lookup(name, context, trail, missing)

	if source is None:
		return None

	trail = trail + (name,)

	if isinstance(source, etherdaw.pattern.NoteList):
		return list(source.notes)

	if isinstance(source, etherdaw.pattern.Transform):
		return _transform_tokens(source, context, trail)

	if isinstance(source, etherdaw.pattern.Inherit):
		if source.notes is not None:
			tokens: typing.Optional[typing.List[str]] = list(source.notes)
		else:
			tokens = _source_tokens(source.parent, context, trail, f'Pattern inheritance: parent pattern "{source.parent}" not found')
		if tokens is None:
			return None
		return etherdaw.transforms.transpose(tokens, source.octave * 12 + source.transpose)

	context.warn(missing)

	return None


def _transform_tokens (
	pattern: etherdaw.pattern.Transform,
	context: PatternContext,
	trail: typing.Tuple[str, ...]
) -> typing.Optional[typing.List[str]]:

	if pattern.source:
		tokens = _source_tokens(pattern.source, context, trail, f'Transform source pattern "{pattern.source}" not found')
		if tokens is None:
			return None
	else:
		tokens = list(pattern.notes)

	return etherdaw.transforms.apply_operations(tokens, pattern.operations, context.diagnostics)


def _transform (pattern: etherdaw.pattern.Transform, context: PatternContext, trail: typing.Tuple[str, ...]) -> ExpandedPattern:

	tokens = _transform_tokens(pattern, context, trail)

	if tokens is None:
		return EMPTY

	return _shifted(expand_tokens(tokens, context), context.shift)


def _continuation (pattern: etherdaw.pattern.Continuation, context: PatternContext, trail: typing.Tuple[str, ...]) -> ExpandedPattern:

	missing = f'Continuation source pattern "{pattern.source}" not found or has no notes'
	tokens = _source_tokens(pattern.source, context, trail, missing)

	if tokens is None:
		return EMPTY

	continued = etherdaw.continuation.continue_motif(tokens, pattern.technique, pattern.steps, pattern.interval, context.diagnostics)

	return _shifted(expand_tokens(continued, context), context.shift)


def _sequential (pattern: etherdaw.pattern.Sequential, context: PatternContext, trail: typing.Tuple[str, ...]) -> ExpandedPattern:

	notes: typing.List[Note] = []
	beat = 0.0

	for part in pattern.parts:
		result = _expand(part, context, trail)
		notes.extend(note.moved(beat) for note in result.notes)
		beat += result.total_beats

	return ExpandedPattern(notes, beat)
