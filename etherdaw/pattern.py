"""Pattern definitions and the expanded note type.

A pattern is one immutable variant per kind. Each variant only carries the
parameters its kind needs, and ``etherdaw.expander.expand`` matches on the
variant type. Score documents describe patterns as dictionaries; ``from_dict``
maps them onto the variants (camelCase and snake_case keys are both
accepted)::

    from_dict({"notes": "C4:q E4:q G4:h"})                   # NoteList
    from_dict({"euclidean": {"hits": 3, "steps": 8}})         # Euclidean
    from_dict({"kick": "x...x...", "snare": "....x..."})      # Drums
    from_dict({"markov": {"states": ["1", "5"], "steps": 8}}) # Markov

A dictionary that defines several kinds at once (``notes`` and ``chords``)
becomes a ``Sequential`` pattern that plays its parts one after another.
"""

import dataclasses
import typing

import etherdaw.constants
import etherdaw.notation
import etherdaw.sequence_utils


class PatternError (ValueError):
	pass


@dataclasses.dataclass
class Note:

	"""
	A single expanded note, positioned in beats.

	``pitch`` is a pitch name (``"C#4"``) or a drum reference
	(``"drum:kick@909"``). Expression fields pass through untouched from
	the note token to the timeline.
	"""

	pitch: str
	start: float
	duration: float
	velocity: float
	timing_offset: typing.Optional[int] = None
	probability: typing.Optional[float] = None
	portamento: bool = False
	jazz: typing.Optional[str] = None
	bend: typing.Optional[int] = None
	ornament: typing.Optional[str] = None

	@property
	def end (self) -> float:

		return self.start + self.duration


	@property
	def is_drum (self) -> bool:

		return self.pitch.startswith("drum:")


	def moved (self, offset: float) -> "Note":

		"""Return a copy shifted later by ``offset`` beats."""

		return dataclasses.replace(self, start=self.start + offset)


	def expression (self) -> typing.Dict[str, typing.Any]:

		"""The expression fields that are set, keyed by name."""

		fields = {
			"timing_offset": self.timing_offset,
			"probability": self.probability,
			"jazz": self.jazz,
			"bend": self.bend,
			"ornament": self.ornament,
		}

		result = {name: value for name, value in fields.items() if value is not None}

		if self.portamento:
			result["portamento"] = True

		return result


# ---------------------------------------------------------------------------
# Pattern variants
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Pattern:

	"""
	Base for all pattern kinds.

	Attributes:
		envelope: Velocity envelope applied after expansion, either a preset
			name or a list of velocity points.
		constrain_to_scale: Snap melodic pitches into the active key.
	"""

	envelope: typing.Optional[typing.Union[str, typing.Tuple[float, ...]]] = None
	constrain_to_scale: bool = False


@dataclasses.dataclass(frozen=True)
class NoteList (Pattern):

	notes: typing.Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class ChordList (Pattern):

	chords: typing.Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class Degrees (Pattern):

	"""Scale degrees (``"1"``, ``"3b"``, ``"5+:h"``) played against the active key."""

	degrees: typing.Tuple[str, ...] = ()
	rhythm: typing.Tuple[str, ...] = ("q",)


@dataclasses.dataclass(frozen=True)
class Arpeggio (Pattern):

	"""
	Broken chord.

	``steps`` is the number of notes to play. Without it the length of the
	arpeggio cannot be known in advance, so expansion reports a warning and
	plays the mode's natural cycle once.
	"""

	chord: str = "C"
	duration: str = etherdaw.constants.ARPEGGIO_DEFAULT_DURATION
	mode: str = etherdaw.constants.ARPEGGIO_DEFAULT_MODE
	octaves: int = etherdaw.constants.ARPEGGIO_DEFAULT_OCTAVES
	gate: float = etherdaw.constants.ARPEGGIO_DEFAULT_GATE
	steps: typing.Optional[int] = None
	pattern: typing.Optional[typing.Tuple[int, ...]] = None

	def __post_init__ (self) -> None:

		if self.mode not in ("up", "down", "updown", "downup", "random"):
			raise PatternError(f"Unknown arpeggio mode: {self.mode!r}")

		if self.octaves < 1:
			raise PatternError("Arpeggio octaves must be at least 1")


@dataclasses.dataclass(frozen=True)
class DrumHit:

	"""One explicitly timed drum hit; ``time`` is compound notation (``"h+8"``)."""

	drum: str
	time: str = "0"
	velocity: typing.Optional[float] = None


@dataclasses.dataclass(frozen=True)
class Drums (Pattern):

	"""
	Step-sequenced drums.

	``lines`` maps drum names to step strings; ``x``/``X`` is a hit, ``>``
	an accent and anything else a rest. ``hits`` lists explicitly timed hits.
	"""

	lines: typing.Tuple[typing.Tuple[str, str], ...] = ()
	hits: typing.Tuple[DrumHit, ...] = ()
	kit: str = etherdaw.constants.DRUM_DEFAULT_KIT
	step: str = etherdaw.constants.DRUM_DEFAULT_STEP
	bars: typing.Optional[int] = None


@dataclasses.dataclass(frozen=True)
class Euclidean (Pattern):

	hits: int = 0
	steps: int = 16
	rotation: int = 0
	duration: str = "16"
	pitch: typing.Optional[str] = None
	drum: typing.Optional[str] = None
	kit: str = etherdaw.constants.DRUM_DEFAULT_KIT

	def __post_init__ (self) -> None:

		if self.steps < 1:
			raise PatternError(f"Euclidean steps must be at least 1, got {self.steps}")

		if self.hits < 0:
			raise PatternError(f"Euclidean hits cannot be negative, got {self.hits}")


@dataclasses.dataclass(frozen=True)
class Markov (Pattern):

	"""
	Notes generated by walking a Markov chain over scale-degree states.

	States are scale degrees (``"1"``, ``"b3"``), absolute pitches
	(``"E2"``), ``"rest"`` or ``"approach"`` (a semitone below the next
	note). ``transitions`` gives an explicit table; otherwise ``preset``
	names a generator.
	"""

	states: typing.Tuple[str, ...] = ()
	steps: int = 8
	duration: typing.Union[str, typing.Tuple[str, ...]] = "8"
	transitions: typing.Optional[typing.Dict[str, typing.Dict[str, float]]] = None
	preset: typing.Optional[str] = None
	initial_state: typing.Optional[str] = None
	octave: int = etherdaw.constants.DEFAULT_MARKOV_OCTAVE
	seed: typing.Optional[int] = None
	chord_scale: typing.Optional[str] = None

	def __post_init__ (self) -> None:

		if not self.duration:
			raise PatternError("Markov duration list must not be empty")


@dataclasses.dataclass(frozen=True)
class TransformStep:

	"""One named operation in a transform chain, with its parameters."""

	operation: str
	params: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class Transform (Pattern):

	"""Apply a chain of transformations to another pattern or inline notes."""

	source: typing.Optional[str] = None
	notes: typing.Tuple[str, ...] = ()
	operations: typing.Tuple[TransformStep, ...] = ()


@dataclasses.dataclass(frozen=True)
class VoiceLead (Pattern):

	progression: typing.Tuple[str, ...] = ()
	voices: int = 4
	style: str = "jazz"
	constraints: typing.Optional[typing.Tuple[str, ...]] = None
	voice_ranges: typing.Optional[typing.Dict[str, typing.Tuple[typing.Union[int, str], typing.Union[int, str]]]] = None
	chord_beats: float = etherdaw.constants.VOICE_LEAD_CHORD_BEATS


@dataclasses.dataclass(frozen=True)
class Continuation (Pattern):

	source: str = ""
	technique: str = "development"
	steps: int = 3
	interval: int = -2


@dataclasses.dataclass(frozen=True)
class Tuplet (Pattern):

	"""``ratio`` is (actual, normal): three notes in the time of two is (3, 2)."""

	notes: typing.Tuple[str, ...] = ()
	ratio: typing.Tuple[int, int] = (3, 2)

	def __post_init__ (self) -> None:

		if self.ratio[0] <= 0 or self.ratio[1] <= 0:
			raise PatternError(f"Tuplet ratio must be positive, got {self.ratio}")


@dataclasses.dataclass(frozen=True)
class Condition:

	"""Compare ``density``, ``probability`` or ``section_index`` against a value."""

	kind: str
	operator: str
	value: float

	def __post_init__ (self) -> None:

		if self.kind not in ("density", "probability", "section_index"):
			raise PatternError(f"Unknown condition: {self.kind!r}")

		if self.operator not in (">", "<", ">=", "<=", "==", "!="):
			raise PatternError(f"Unknown condition operator: {self.operator!r}")


@dataclasses.dataclass(frozen=True)
class Conditional (Pattern):

	"""Play ``then`` when the condition holds, otherwise ``otherwise`` (or ``then``)."""

	condition: Condition = Condition("density", ">", 0.5)
	then: str = ""
	otherwise: typing.Optional[str] = None


@dataclasses.dataclass(frozen=True)
class Inherit (Pattern):

	"""Reuse another pattern, optionally replacing its notes or shifting them."""

	parent: str = ""
	notes: typing.Optional[typing.Tuple[str, ...]] = None
	transpose: int = 0
	octave: int = 0


@dataclasses.dataclass(frozen=True)
class Rest (Pattern):

	duration: str = "w"


@dataclasses.dataclass(frozen=True)
class Sequential (Pattern):

	"""Several patterns played back to back."""

	parts: typing.Tuple[Pattern, ...] = ()


# ---------------------------------------------------------------------------
# Dictionary loading
# ---------------------------------------------------------------------------

def _get (data: typing.Mapping[str, typing.Any], *names: str, default: typing.Any = None) -> typing.Any:

	for name in names:
		if name in data:
			return data[name]

	return default


def _strings (value: typing.Any) -> typing.Tuple[str, ...]:

	if value is None:
		return ()

	if isinstance(value, str):
		return (value,)

	return tuple(str(item) for item in value)


def _notes (value: typing.Any) -> typing.Tuple[str, ...]:

	if isinstance(value, str):
		return tuple(etherdaw.notation.expand_compact(value))

	return tuple(etherdaw.notation.expand_compact([str(item) for item in value]))


def _envelope (value: typing.Any) -> typing.Optional[typing.Union[str, typing.Tuple[float, ...]]]:

	if value is None or isinstance(value, str):
		return value

	if isinstance(value, typing.Mapping):
		if "points" in value:
			return tuple(float(point) for point in value["points"])
		return value.get("preset")

	return tuple(float(point) for point in value)


def _transform_steps (value: typing.Mapping[str, typing.Any]) -> typing.Tuple[TransformStep, ...]:

	if "operations" in value:
		entries = value["operations"]
	else:
		entries = [value]

	steps = []

	for entry in entries:
		if isinstance(entry, str):
			steps.append(TransformStep(entry))
		else:
			steps.append(TransformStep(entry["operation"], dict(entry.get("params") or {})))

	return tuple(steps)


def _drums (data: typing.Mapping[str, typing.Any]) -> Drums:

	lines: typing.List[typing.Tuple[str, str]] = []

	if "lines" in data:
		lines.extend((str(name), str(steps)) for name, steps in data["lines"].items())
	else:
		for name in etherdaw.constants.DRUM_NAMES:
			if isinstance(data.get(name), str):
				lines.append((name, data[name]))

	if not lines and isinstance(data.get("steps"), str):
		lines.append(("kick", data["steps"]))

	hits = tuple(
		DrumHit(drum=str(hit["drum"]), time=str(hit.get("time", "0")), velocity=hit.get("velocity"))
		for hit in data.get("hits") or []
	)

	return Drums(
		lines = tuple(lines),
		hits = hits,
		kit = str(data.get("kit", etherdaw.constants.DRUM_DEFAULT_KIT)),
		step = str(_get(data, "step_duration", "stepDuration", "step", default=etherdaw.constants.DRUM_DEFAULT_STEP)),
		bars = data.get("bars"),
	)


def _is_drum_shorthand (data: typing.Mapping[str, typing.Any]) -> bool:

	return data.get("type") == "drums" or any(isinstance(data.get(name), str) for name in etherdaw.constants.DRUM_NAMES)


def _parts (data: typing.Mapping[str, typing.Any]) -> typing.List[Pattern]:

	parts: typing.List[Pattern] = []

	if "notes" in data:
		parts.append(NoteList(notes=_notes(data["notes"])))

	if "chords" in data:
		parts.append(ChordList(chords=_notes(data["chords"])))

	if "degrees" in data:
		parts.append(Degrees(degrees=_strings(data["degrees"]), rhythm=_strings(data.get("rhythm")) or ("q",)))

	if "arpeggio" in data:
		arp = data["arpeggio"]
		parts.append(Arpeggio(
			chord = str(arp["chord"]),
			duration = str(arp.get("duration", etherdaw.constants.ARPEGGIO_DEFAULT_DURATION)),
			mode = str(arp.get("mode", etherdaw.constants.ARPEGGIO_DEFAULT_MODE)),
			octaves = int(_get(arp, "octaves", "octave_span", "octaveSpan", default=etherdaw.constants.ARPEGGIO_DEFAULT_OCTAVES)),
			gate = float(arp.get("gate", etherdaw.constants.ARPEGGIO_DEFAULT_GATE)),
			steps = arp.get("steps"),
			pattern = tuple(arp["pattern"]) if arp.get("pattern") else None,
		))

	if "drums" in data:
		parts.append(_drums(data["drums"]))
	elif _is_drum_shorthand(data):
		parts.append(_drums(data))

	if "euclidean" in data:
		config = data["euclidean"]
		if "preset" in config:
			hits, steps = etherdaw.sequence_utils.preset(config["preset"])
		else:
			hits, steps = int(config["hits"]), int(config["steps"])
		parts.append(Euclidean(
			hits = hits,
			steps = steps,
			rotation = int(config.get("rotation", 0)),
			duration = str(config.get("duration", "16")),
			pitch = config.get("pitch"),
			drum = config.get("drum"),
			kit = str(config.get("kit", etherdaw.constants.DRUM_DEFAULT_KIT)),
		))

	if "markov" in data:
		config = data["markov"]
		duration = config.get("duration", "8")
		parts.append(Markov(
			states = _strings(config.get("states")),
			steps = int(config.get("steps", 8)),
			duration = str(duration) if isinstance(duration, str) else _strings(duration),
			transitions = config.get("transitions"),
			preset = config.get("preset"),
			initial_state = _get(config, "initial_state", "initialState"),
			octave = int(config.get("octave", etherdaw.constants.DEFAULT_MARKOV_OCTAVE)),
			seed = config.get("seed"),
			chord_scale = _get(config, "chord_scale", "chordScale"),
			constrain_to_scale = bool(_get(config, "constrain_to_scale", "constrainToScale", default=False)),
		))

	if "continuation" in data:
		config = data["continuation"]
		parts.append(Continuation(
			source = str(config["source"]),
			technique = str(config.get("technique", "development")),
			steps = int(config.get("steps", 3)),
			interval = int(config.get("interval", -2)),
		))

	voice_lead = _get(data, "voice_lead", "voiceLead")

	if voice_lead is not None:
		ranges = _get(voice_lead, "voice_ranges", "voiceRanges")
		constraints = voice_lead.get("constraints")
		parts.append(VoiceLead(
			progression = _strings(voice_lead["progression"]),
			voices = int(voice_lead.get("voices", 4)),
			style = str(voice_lead.get("style", "jazz")),
			constraints = _strings(constraints) if constraints is not None else None,
			voice_ranges = {name: (low, high) for name, (low, high) in ranges.items()} if ranges else None,
			chord_beats = float(_get(voice_lead, "chord_beats", "chordBeats", default=etherdaw.constants.VOICE_LEAD_CHORD_BEATS)),
		))

	if "tuplet" in data:
		config = data["tuplet"]
		actual, normal = config.get("ratio", (3, 2))
		parts.append(Tuplet(notes=_notes(config["notes"]), ratio=(int(actual), int(normal))))

	if "rest" in data:
		parts.append(Rest(duration=str(data["rest"])))

	return parts


def from_dict (data: typing.Mapping[str, typing.Any]) -> Pattern:

	"""
	Build a pattern variant from a score-document dictionary.

	Raises:
		PatternError: The dictionary describes no known pattern kind, or a
			required field is missing.

	Example:
		```python
		pattern = from_dict({"chords": ["Am7:h", "D7:h"], "envelope": "swell"})
		isinstance(pattern, ChordList)  # True
		```
	"""

	try:
		return _from_dict(data)
	except (KeyError, TypeError) as exc:
		raise PatternError(f"Invalid pattern definition: {exc}") from exc


def _from_dict (data: typing.Mapping[str, typing.Any]) -> Pattern:

	common = {
		"envelope": _envelope(data.get("envelope")),
		"constrain_to_scale": bool(_get(data, "constrain_to_scale", "constrainToScale", default=False)),
	}

	if "conditional" in data:
		config = data["conditional"]
		condition = Condition(
			kind = str(config["condition"]),
			operator = str(config["operator"]),
			value = float(config["value"]),
		)
		return Conditional(condition=condition, then=str(config["then"]), otherwise=config.get("else"), **common)

	if "extends" in data:
		overrides = data.get("overrides") or {}
		notes = overrides.get("notes")
		return Inherit(
			parent = str(data["extends"]),
			notes = _notes(notes) if notes is not None else None,
			transpose = int(overrides.get("transpose", 0)),
			octave = int(overrides.get("octave", 0)),
			**common,
		)

	if "transform" in data:
		config = data["transform"]
		return Transform(
			source = config.get("source"),
			notes = _notes(config["notes"]) if "notes" in config else (),
			operations = _transform_steps(config),
			**common,
		)

	parts = _parts(data)

	if not parts:
		raise PatternError(f"Pattern defines no known kind: {sorted(data)}")

	if len(parts) == 1:
		part = parts[0]
		return dataclasses.replace(
			part,
			envelope = common["envelope"],
			constrain_to_scale = common["constrain_to_scale"] or part.constrain_to_scale,
		)

	return Sequential(parts=tuple(parts), **common)
