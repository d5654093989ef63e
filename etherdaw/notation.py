"""Note token parsing.

A note token packs a pitch, a duration code and optional expression marks
into one string::

    C4:q            quarter-note middle C
    F#3:8.          dotted eighth
    E4:8t3          eighth-note triplet
    G4:q*           staccato
    A4:h>@0.6       accented, explicit velocity
    Bb3:q@mf        dynamic marking
    D5:q.fall+3     jazz fall of three semitones
    C5:q.tr         trill ornament
    E4:q-10ms       played 10 ms early
    G4:8?0.5        plays half of the time
    C4:q~>          glide into the next note
    r:h             half-note rest

Tokens are usually written as lists or compact strings (``"C4:q E4:q | G4:h"``);
``expand_compact`` flattens both forms and drops the ``|`` bar separators,
which exist purely for layout.

Pitch names and MIDI numbers convert with ``pitch_to_midi`` / ``midi_to_pitch``
(C4 = 60). Sharps are used when converting back from MIDI.
"""

import dataclasses
import re
import typing

import etherdaw.constants
import etherdaw.constants.durations
import etherdaw.constants.velocity


class NoteParseError (ValueError):
	pass


BAR = "|"

_NATURAL_PC: typing.Dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

_SHARP_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

JAZZ_ARTICULATIONS = ("fall", "doit", "scoop", "bend")
ORNAMENTS = ("tr", "mord", "turn")

_NOTE_PATTERN = re.compile(
	r"""
	^(?P<letter>[A-Ga-g])(?P<accidental>[\#b]?)(?P<octave>-?\d)?
	:(?P<code>\d+|[whq])(?P<dot>\.?)
	(?:t(?P<tuplet>\d+))?
	(?:(?P<articulation>[*>^])|(?P<glide>~>)|(?P<legato>~))?
	(?:\.(?P<jazz>fall|doit|scoop|bend)(?:\+(?P<bend>\d+))?)?
	(?:\.(?P<ornament>tr|mord|turn))?
	(?:@(?P<velocity>(?:0|1)?\.?\d+|ppp|pp|p|mp|mf|fff|ff|f))?
	(?:(?P<offset>[+-]\d+)ms)?
	(?:\?(?P<probability>(?:0|1)?\.?\d+))?
	(?P<trailing_glide>~>)?$
	""",
	re.VERBOSE,
)

_REST_PATTERN = re.compile(r"^(?:r|rest):(?P<code>\d+|[whq])(?P<dot>\.?)$", re.IGNORECASE)

_PITCH_PATTERN = re.compile(r"^(?P<letter>[A-Ga-g])(?P<accidental>[\#b]?)(?P<octave>-?\d+)$")

_TIME_SIGNATURE_PATTERN = re.compile(r"^\s*(\d+)\s*/\s*(\d+)\s*$")


@dataclasses.dataclass
class ParsedNote:

	"""
	A single parsed note or rest token.

	``pitch`` is ``None`` for rests. ``duration`` is the sounding length in
	beats after dots and tuplets; ``duration_code`` and ``dotted`` keep the
	written form so the token can be formatted again.
	"""

	pitch: typing.Optional[str]
	duration: float
	duration_code: str = "q"
	dotted: bool = False
	tuplet: typing.Optional[int] = None
	articulation: str = ""
	velocity: typing.Optional[float] = None
	dynamic: typing.Optional[str] = None
	timing_offset: typing.Optional[int] = None
	probability: typing.Optional[float] = None
	portamento: bool = False
	jazz: typing.Optional[str] = None
	bend: typing.Optional[int] = None
	ornament: typing.Optional[str] = None

	@property
	def is_rest (self) -> bool:

		return self.pitch is None


	@property
	def midi (self) -> int:

		"""MIDI number of the pitch. Raises ``ValueError`` for rests."""

		if self.pitch is None:
			raise ValueError("A rest has no pitch")

		return pitch_to_midi(self.pitch)


	@property
	def gate (self) -> float:

		return etherdaw.constants.velocity.ARTICULATIONS[self.articulation][0]


	@property
	def velocity_boost (self) -> float:

		return etherdaw.constants.velocity.ARTICULATIONS[self.articulation][1]


def is_bar (token: str) -> bool:

	return token.strip() == BAR


def is_rest (token: str) -> bool:

	"""True when the token is a rest (``r:q``, ``rest:h``)."""

	lowered = token.strip().lower()

	return lowered.startswith("r:") or lowered.startswith("rest:")


def parse_duration (code: str, dotted: bool = False, tuplet: typing.Optional[int] = None) -> float:

	"""Convert a duration code to beats.

	Parameters:
		code: One of ``w h q 2 4 8 16 32``.
		dotted: Multiply by 1.5.
		tuplet: Tuplet ratio (2-9), scaling by ``base / ratio``.

	Raises:
		NoteParseError: Unknown code or tuplet ratio out of range.
	"""

	if code not in etherdaw.constants.durations.DURATION_CODES:
		raise NoteParseError(f"Unknown duration code: {code!r}")

	beats = etherdaw.constants.durations.DURATION_CODES[code]

	if dotted:
		beats *= etherdaw.constants.durations.DOT_MULTIPLIER

	if tuplet is not None:
		if not etherdaw.constants.durations.MIN_TUPLET_RATIO <= tuplet <= etherdaw.constants.durations.MAX_TUPLET_RATIO:
			raise NoteParseError(f"Tuplet ratio must be between 2 and 9, got {tuplet}")
		beats = beats * etherdaw.constants.durations.tuplet_base(tuplet) / tuplet

	return beats


def parse_duration_string (text: str) -> float:

	"""Beats for a bare duration string with an optional dot (``"q."`` -> 1.5)."""

	text = text.strip()
	dotted = text.endswith(".")

	return parse_duration(text[:-1] if dotted else text, dotted)


def _parse_unit_value (text: str, what: str, token: str) -> float:

	value = float(text)

	if not 0.0 <= value <= 1.0:
		raise NoteParseError(f"{what} must be between 0 and 1 in {token!r}")

	return value


def parse_token (token: str) -> ParsedNote:

	"""
	Parse one note or rest token.

	Parameters:
		token: The token text, e.g. ``"C#4:8.>@0.9"`` or ``"r:q"``.

	Returns:
		A ``ParsedNote``. Rests have ``pitch=None``.

	Raises:
		NoteParseError: If the token does not match the grammar or a value
			is out of range.

	Example:
		```python
		note = parse_token("E4:8.")
		note.pitch      # "E4"
		note.duration   # 0.75
		```
	"""

	text = token.strip()

	rest_match = _REST_PATTERN.match(text)

	if rest_match:
		dotted = rest_match.group("dot") == "."
		return ParsedNote(
			pitch = None,
			duration = parse_duration(rest_match.group("code"), dotted),
			duration_code = rest_match.group("code"),
			dotted = dotted,
		)

	match = _NOTE_PATTERN.match(text)

	if not match:
		raise NoteParseError(f"Invalid note token: {token!r}")

	letter = match.group("letter").upper()
	accidental = match.group("accidental")
	octave = int(match.group("octave")) if match.group("octave") is not None else etherdaw.constants.DEFAULT_NOTE_OCTAVE

	code = match.group("code")
	dotted = match.group("dot") == "."
	tuplet = int(match.group("tuplet")) if match.group("tuplet") else None

	duration = parse_duration(code, dotted, tuplet)

	if match.group("articulation"):
		articulation = match.group("articulation")
	elif match.group("legato"):
		articulation = "~"
	else:
		articulation = ""

	velocity: typing.Optional[float] = None
	dynamic: typing.Optional[str] = None
	velocity_text = match.group("velocity")

	if velocity_text is not None:
		if velocity_text in etherdaw.constants.velocity.DYNAMICS:
			dynamic = velocity_text
			velocity = etherdaw.constants.velocity.DYNAMICS[velocity_text]
		else:
			velocity = _parse_unit_value(velocity_text, "Velocity", token)

	bend: typing.Optional[int] = None

	if match.group("bend") is not None:
		bend = int(match.group("bend"))
		if not 1 <= bend <= 12:
			raise NoteParseError(f"Bend amount must be between 1 and 12 semitones in {token!r}")

	probability = None

	if match.group("probability") is not None:
		probability = _parse_unit_value(match.group("probability"), "Probability", token)

	return ParsedNote(
		pitch = f"{letter}{accidental}{octave}",
		duration = duration,
		duration_code = code,
		dotted = dotted,
		tuplet = tuplet,
		articulation = articulation,
		velocity = velocity,
		dynamic = dynamic,
		timing_offset = int(match.group("offset")) if match.group("offset") else None,
		probability = probability,
		portamento = bool(match.group("glide") or match.group("trailing_glide")),
		jazz = match.group("jazz"),
		bend = bend,
		ornament = match.group("ornament"),
	)


def format_token (note: ParsedNote) -> str:

	"""
	Write a ``ParsedNote`` back out as a token.

	Example:
		```python
		format_token(parse_token("C4:q.>@mf"))  # "C4:q.>@mf"
		```
	"""

	dot = "." if note.dotted else ""

	if note.pitch is None:
		return f"r:{note.duration_code}{dot}"

	parts = [f"{note.pitch}:{note.duration_code}{dot}"]

	if note.tuplet is not None:
		parts.append(f"t{note.tuplet}")

	parts.append(note.articulation)

	if note.jazz:
		parts.append(f".{note.jazz}")
		if note.bend is not None:
			parts.append(f"+{note.bend}")

	if note.ornament:
		parts.append(f".{note.ornament}")

	if note.dynamic:
		parts.append(f"@{note.dynamic}")
	elif note.velocity is not None:
		parts.append(f"@{note.velocity:g}")

	if note.timing_offset is not None:
		parts.append(f"{note.timing_offset:+d}ms")

	if note.probability is not None:
		parts.append(f"?{note.probability:g}")

	if note.portamento:
		parts.append("~>")

	return "".join(parts)


def expand_compact (notes: typing.Union[str, typing.Sequence[str]]) -> typing.List[str]:

	"""
	Flatten compact note strings into a plain token list.

	Accepts either one string (``"C4:q E4:q | G4:h"``) or a list whose entries
	may themselves hold several space- or bar-separated tokens. Bar separators
	are dropped.
	"""

	if isinstance(notes, str):
		notes = [notes]

	tokens: typing.List[str] = []

	for entry in notes:
		for token in entry.replace(BAR, " ").split():
			tokens.append(token)

	return tokens


def pitch_to_midi (pitch: str) -> int:

	"""
	Convert a pitch name to a MIDI note number (C4 = 60).

	Raises:
		NoteParseError: If the pitch is malformed.
	"""

	match = _PITCH_PATTERN.match(pitch.strip())

	if not match:
		raise NoteParseError(f"Invalid pitch: {pitch!r}")

	value = _NATURAL_PC[match.group("letter").upper()]

	if match.group("accidental") == "#":
		value += 1
	elif match.group("accidental") == "b":
		value -= 1

	return (int(match.group("octave")) + 1) * 12 + value


def midi_to_pitch (midi: int) -> str:

	"""Convert a MIDI note number to a pitch name using sharps (60 -> ``"C4"``)."""

	return f"{_SHARP_NAMES[midi % 12]}{midi // 12 - 1}"


def transpose_pitch (pitch: str, semitones: int) -> str:

	"""Shift a pitch name by a number of semitones."""

	return midi_to_pitch(pitch_to_midi(pitch) + semitones)


def beats_to_seconds (beats: float, tempo: float) -> float:

	return beats / tempo * 60.0


def seconds_to_beats (seconds: float, tempo: float) -> float:

	return seconds * tempo / 60.0


def parse_time_signature (time_signature: str) -> typing.Tuple[int, int]:

	"""
	Split a time signature string into (numerator, denominator).

	Raises:
		ValueError: If the string is not of the form ``"N/D"`` with a
			positive numerator and a power-of-two denominator.
	"""

	match = _TIME_SIGNATURE_PATTERN.match(time_signature)

	if not match:
		raise ValueError(f"Invalid time signature: {time_signature!r}")

	numerator, denominator = int(match.group(1)), int(match.group(2))

	if numerator <= 0 or denominator not in (1, 2, 4, 8, 16, 32):
		raise ValueError(f"Invalid time signature: {time_signature!r}")

	return numerator, denominator


def beats_per_bar (time_signature: str) -> float:

	"""Length of one bar in quarter-note beats (``"6/8"`` -> 3.0)."""

	numerator, denominator = parse_time_signature(time_signature)

	return numerator * (4.0 / denominator)
