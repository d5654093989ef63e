"""Melodic and rhythmic transformations over note token lists.

Every function takes a list of tokens (``["C4:q", "E4:8", "r:8"]``) and
returns a new list; nothing is modified in place. Rests keep their place and
duration, bar separators pass through, and expression marks on a token
(articulation, velocity, probability) survive pitch and duration changes.

The contrapuntal operations (inversion, retrograde, augmentation, tonal
answer, sequences) are the building blocks of fugal writing::

    subject = ["D4:q", "A4:q", "F4:8", "E4:8", "D4:q"]
    answer = tonal_answer(subject, tonic="D4")
    episode = create_sequence(extract_head(subject, 3), [0, -2, -4])
"""

import dataclasses
import logging
import math
import re
import typing

import etherdaw.constants.durations
import etherdaw.constants.velocity
import etherdaw.diagnostics
import etherdaw.notation
import etherdaw.pattern


logger = logging.getLogger(__name__)

Tokens = typing.List[str]

VELOCITY_CURVES = ("crescendo", "diminuendo", "swell")

ENVELOPE_PRESETS = ("crescendo", "diminuendo", "swell", "accent_first", "accent_downbeats")

# pitch-or-chord, duration code, dot, everything after the duration.
_DURATION_PATTERN = re.compile(r"^([^:]+):(\d+|[whq])(\.?)(.*)$")
_NAMED_MARK_PATTERN = re.compile(r"^(?:fall|doit|scoop|bend|tr|mord|turn)")


def _map_pitches (tokens: typing.Sequence[str], shift: typing.Callable[[int], int]) -> Tokens:

	result = []

	for token in tokens:
		if etherdaw.notation.is_bar(token) or etherdaw.notation.is_rest(token):
			result.append(token)
			continue

		note = etherdaw.notation.parse_token(token)
		note.pitch = etherdaw.notation.midi_to_pitch(shift(note.midi))
		result.append(etherdaw.notation.format_token(note))

	return result


def _first_pitch (tokens: typing.Sequence[str]) -> typing.Optional[int]:

	for token in tokens:
		if not etherdaw.notation.is_bar(token) and not etherdaw.notation.is_rest(token):
			return etherdaw.notation.parse_token(token).midi

	return None


# ---------------------------------------------------------------------------
# Pitch
# ---------------------------------------------------------------------------

def transpose (tokens: typing.Sequence[str], semitones: int) -> Tokens:

	"""Shift every pitch by ``semitones``."""

	if semitones == 0:
		return list(tokens)

	return _map_pitches(tokens, lambda midi: midi + semitones)


def shift_octave (tokens: typing.Sequence[str], octaves: int) -> Tokens:

	return transpose(tokens, octaves * 12)


def invert (tokens: typing.Sequence[str], axis: typing.Optional[str] = None) -> Tokens:

	"""
	Mirror every interval around ``axis`` (default: the first pitched note).

	Example:
		```python
		invert(["D4:q", "A4:q"])  # ["D4:q", "G3:q"]
		```
	"""

	centre = etherdaw.notation.pitch_to_midi(axis) if axis else _first_pitch(tokens)

	if centre is None:
		return list(tokens)

	return _map_pitches(tokens, lambda midi: 2 * centre - midi)


def tonal_answer (tokens: typing.Sequence[str], tonic: typing.Union[str, int]) -> Tokens:

	"""
	Answer a fugue subject at the dominant with tonal mutation.

	Tonic notes become dominants and dominants become the tonic above;
	everything else moves up a perfect fifth. A subject that opens on the
	tonic opens its answer on the dominant in the same octave.
	"""

	tonic_midi = etherdaw.notation.pitch_to_midi(tonic) if isinstance(tonic, str) else tonic
	dominant_midi = tonic_midi + 7
	first = _first_pitch(tokens)
	starts_on_tonic = first is not None and first % 12 == tonic_midi % 12

	result = []
	first_done = False

	for token in tokens:
		if etherdaw.notation.is_bar(token) or etherdaw.notation.is_rest(token):
			result.append(token)
			continue

		note = etherdaw.notation.parse_token(token)
		midi = note.midi

		if starts_on_tonic and not first_done:
			answer = (midi // 12) * 12 + dominant_midi % 12
		elif midi % 12 == tonic_midi % 12:
			answer = dominant_midi + (midi // 12 - tonic_midi // 12) * 12
		elif midi % 12 == dominant_midi % 12:
			answer = tonic_midi + 12 + (midi // 12 - dominant_midi // 12) * 12
		else:
			answer = midi + 7

		first_done = True
		note.pitch = etherdaw.notation.midi_to_pitch(answer)
		result.append(etherdaw.notation.format_token(note))

	return result


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------

def retrograde (tokens: typing.Sequence[str]) -> Tokens:

	"""Reverse the order; each duration stays attached to its pitch."""

	return list(reversed(tokens))


def retrograde_invert (tokens: typing.Sequence[str], axis: typing.Optional[str] = None) -> Tokens:

	return retrograde(invert(tokens, axis))


def extract_head (tokens: typing.Sequence[str], count: int) -> Tokens:

	return list(tokens[:count])


def extract_tail (tokens: typing.Sequence[str], count: int) -> Tokens:

	if count <= 0:
		return []

	return list(tokens[-count:])


def create_sequence (motif: typing.Sequence[str], intervals: typing.Sequence[int]) -> Tokens:

	"""Concatenate copies of ``motif`` transposed by each interval in turn."""

	result: Tokens = []

	for interval in intervals:
		result.extend(transpose(motif, interval))

	return result


def interleave (first: typing.Sequence[str], second: typing.Sequence[str]) -> Tokens:

	"""Alternate tokens from two lines; the longer line's surplus follows at the end."""

	result: Tokens = []

	for i in range(max(len(first), len(second))):
		if i < len(first):
			result.append(first[i])
		if i < len(second):
			result.append(second[i])

	return result


# ---------------------------------------------------------------------------
# Duration
# ---------------------------------------------------------------------------

def augment (tokens: typing.Sequence[str], factor: float) -> Tokens:

	"""
	Scale every duration by ``factor`` and snap to the nearest written length.

	Tuplet marks are dropped since the snapped length is a plain or dotted
	code. Factors above 1 augment, below 1 diminish.

	Raises:
		ValueError: If ``factor`` is not positive.
	"""

	if factor <= 0:
		raise ValueError(f"Augmentation factor must be positive, got {factor}")

	result = []

	for token in tokens:
		if etherdaw.notation.is_bar(token):
			result.append(token)
			continue

		note = etherdaw.notation.parse_token(token)
		code, dotted = etherdaw.constants.durations.nearest_code(note.duration * factor)
		note.duration_code = code
		note.dotted = dotted
		note.tuplet = None
		note.duration = etherdaw.notation.parse_duration(code, dotted)
		result.append(etherdaw.notation.format_token(note))

	return result


def diminish (tokens: typing.Sequence[str], factor: float = 0.5) -> Tokens:

	return augment(tokens, factor)


def stretch (tokens: typing.Sequence[str], factor: float) -> Tokens:

	"""
	Time-stretch note or chord tokens by ``factor`` (2.0 = half speed).

	Unlike ``augment`` this works on the written text only, so chord tokens
	(``"Am7:h"``) stretch as well. Tokens without a recognisable duration
	pass through unchanged.

	Example:
		```python
		stretch(["Cmaj7:h", "G7:q."], 0.5)  # ["Cmaj7:q", "G7:8."]
		```
	"""

	if factor <= 0:
		raise ValueError(f"Stretch factor must be positive, got {factor}")

	result = []

	for token in tokens:
		match = _DURATION_PATTERN.match(token)

		if etherdaw.notation.is_bar(token) or not match:
			result.append(token)
			continue

		pitch, code, dot, modifiers = match.groups()

		# "q.fall" is an undotted quarter with a jazz mark
		if dot and _NAMED_MARK_PATTERN.match(modifiers):
			dot, modifiers = "", "." + modifiers

		if code not in etherdaw.constants.durations.DURATION_CODES:
			result.append(token)
			continue

		beats = etherdaw.notation.parse_duration(code, dot == ".") * factor
		new_code, dotted = etherdaw.constants.durations.nearest_code(beats)
		result.append(f"{pitch}:{new_code}{'.' if dotted else ''}{modifiers}")

	return result


# ---------------------------------------------------------------------------
# Velocity
# ---------------------------------------------------------------------------

def velocity_to_dynamic (velocity: float) -> str:

	"""Nearest dynamic marking for a 0-1 velocity."""

	if velocity <= 0.2:
		return "pp"
	if velocity <= 0.35:
		return "p"
	if velocity <= 0.5:
		return "mp"
	if velocity <= 0.7:
		return "mf"
	if velocity <= 0.85:
		return "f"
	return "ff"


def scale_velocity (tokens: typing.Sequence[str], scale: float) -> Tokens:

	"""
	Multiply each note's velocity by ``scale``.

	Dynamic marks are re-expressed as the nearest dynamic, numeric
	velocities stay numeric. Unmarked notes are taken as ``mf`` and only
	gain a marking when the result differs from ``mf`` by more than 0.1.
	"""

	default = etherdaw.constants.velocity.PHRASE_DYNAMICS["mf"]
	result = []

	for token in tokens:
		if etherdaw.notation.is_bar(token) or etherdaw.notation.is_rest(token):
			result.append(token)
			continue

		note = etherdaw.notation.parse_token(token)

		if note.dynamic is not None:
			current = etherdaw.constants.velocity.PHRASE_DYNAMICS.get(note.dynamic, default)
			new = max(0.0, min(1.0, current * scale))
			note.dynamic = velocity_to_dynamic(new)
			note.velocity = etherdaw.constants.velocity.DYNAMICS[note.dynamic]

		elif note.velocity is not None:
			note.velocity = round(max(0.0, min(1.0, note.velocity * scale)), 2)

		else:
			new = max(0.0, min(1.0, default * scale))
			if abs(new - default) > 0.1:
				note.dynamic = velocity_to_dynamic(new)
				note.velocity = etherdaw.constants.velocity.DYNAMICS[note.dynamic]

		result.append(etherdaw.notation.format_token(note))

	return result


def curve_value (curve: str, progress: float) -> float:

	"""Velocity on a named curve at ``progress`` (0-1)."""

	if curve == "crescendo":
		return 0.3 + 0.6 * progress

	if curve == "diminuendo":
		return 0.9 - 0.6 * progress

	if curve == "swell":
		return 0.3 + 0.6 * math.sin(progress * math.pi)

	raise ValueError(f"Unknown velocity curve: {curve!r}. Available: {', '.join(VELOCITY_CURVES)}")


def apply_velocity_curve (tokens: typing.Sequence[str], curve: str) -> Tokens:

	"""
	Mark each note with a dynamic following ``curve`` across the phrase.

	Progress is measured over pitched notes only, so rests do not stretch
	the curve. A single note sits at the curve's midpoint.
	"""

	pitched = [t for t in tokens if not etherdaw.notation.is_bar(t) and not etherdaw.notation.is_rest(t)]
	total = len(pitched)
	index = 0
	result = []

	for token in tokens:
		if etherdaw.notation.is_bar(token) or etherdaw.notation.is_rest(token):
			result.append(token)
			continue

		progress = index / (total - 1) if total > 1 else 0.5
		index += 1

		note = etherdaw.notation.parse_token(token)
		note.dynamic = velocity_to_dynamic(curve_value(curve, progress))
		note.velocity = etherdaw.constants.velocity.DYNAMICS[note.dynamic]
		result.append(etherdaw.notation.format_token(note))

	return result


def envelope_values (
	count: int,
	envelope: typing.Union[str, typing.Sequence[float]],
	base: float = etherdaw.constants.velocity.DEFAULT_VELOCITY
) -> typing.List[float]:

	"""
	Velocities for ``count`` notes shaped by an envelope.

	Presets range between ``max(0.1, base * 0.3)`` and ``min(1, base * 1.2)``.
	A list of points is linearly interpolated across the notes and clamped
	to 0-1.

	Raises:
		ValueError: Unknown preset name.
	"""

	if count <= 0:
		return []

	if count == 1:
		return [base]

	low = max(etherdaw.constants.velocity.ENVELOPE_FLOOR, base * etherdaw.constants.velocity.ENVELOPE_MIN_RATIO)
	high = min(1.0, base * etherdaw.constants.velocity.ENVELOPE_MAX_RATIO)

	if not isinstance(envelope, str):
		points = list(envelope)
		if not points:
			return [base] * count
		if len(points) == 1:
			return [max(0.0, min(1.0, points[0]))] * count

		values = []
		for i in range(count):
			position = i / (count - 1) * (len(points) - 1)
			lower = int(math.floor(position))
			upper = min(lower + 1, len(points) - 1)
			fraction = position - lower
			value = points[lower] + (points[upper] - points[lower]) * fraction
			values.append(max(0.0, min(1.0, value)))
		return values

	if envelope not in ENVELOPE_PRESETS:
		raise ValueError(f"Unknown velocity envelope: {envelope!r}. Available: {', '.join(ENVELOPE_PRESETS)}")

	values = []

	for i in range(count):
		progress = i / (count - 1)

		if envelope == "crescendo":
			values.append(low + (high - low) * progress)
		elif envelope == "diminuendo":
			values.append(high - (high - low) * progress)
		elif envelope == "swell":
			values.append(low + (high - low) * math.sin(progress * math.pi))
		elif envelope == "accent_first":
			values.append(high if i == 0 else base)
		else:
			values.append(high if i % 2 == 0 else base * etherdaw.constants.velocity.ENVELOPE_OFFBEAT_RATIO)

	return values


def apply_envelope (
	notes: typing.Sequence[etherdaw.pattern.Note],
	envelope: typing.Union[str, typing.Sequence[float]],
	base: float = etherdaw.constants.velocity.DEFAULT_VELOCITY
) -> typing.List[etherdaw.pattern.Note]:

	"""Replace note velocities with envelope values, in note order."""

	values = envelope_values(len(notes), envelope, base)

	return [dataclasses.replace(note, velocity=value) for note, value in zip(notes, values)]


# ---------------------------------------------------------------------------
# Named operations
# ---------------------------------------------------------------------------

def apply_operation (
	tokens: typing.Sequence[str],
	step: etherdaw.pattern.TransformStep,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> Tokens:

	"""
	Run one named operation from a transform chain.

	Unknown operation names leave the tokens unchanged and record a warning.
	"""

	params = step.params
	operation = step.operation

	if operation == "invert":
		return invert(tokens, params.get("axis"))
	if operation == "retrograde":
		return retrograde(tokens)
	if operation == "retrograde_invert":
		return retrograde_invert(tokens, params.get("axis"))
	if operation == "augment":
		return augment(tokens, float(params.get("factor", 2)))
	if operation == "diminish":
		return diminish(tokens, float(params.get("factor", 0.5)))
	if operation == "stretch":
		return stretch(tokens, float(params.get("factor", 1)))
	if operation == "transpose":
		return transpose(tokens, int(params.get("semitones", 0)))
	if operation == "octave":
		return shift_octave(tokens, int(params.get("octaves", 1)))
	if operation == "velocity":
		return scale_velocity(tokens, float(params.get("scale", 1)))
	if operation == "velocity_curve":
		return apply_velocity_curve(tokens, str(params.get("curve", "crescendo")))
	if operation == "tonal_answer":
		return tonal_answer(tokens, params.get("tonic", "C4"))
	if operation == "head":
		return extract_head(tokens, int(params.get("count", 1)))
	if operation == "tail":
		return extract_tail(tokens, int(params.get("count", 1)))
	if operation == "sequence":
		return create_sequence(tokens, [int(i) for i in params.get("intervals", [0])])

	if diagnostics is not None:
		diagnostics.warn(f'Unknown transform operation "{operation}"')

	return list(tokens)


def apply_operations (
	tokens: typing.Sequence[str],
	steps: typing.Sequence[etherdaw.pattern.TransformStep],
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> Tokens:

	"""Apply a chain of operations left to right."""

	result = list(tokens)

	for step in steps:
		logger.debug(f"Transform {step.operation} {step.params} on {len(result)} tokens")
		result = apply_operation(result, step, diagnostics)

	return result
