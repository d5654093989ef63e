"""Score documents.

A score is settings, named patterns, named sections and an arrangement (the
order sections play in). Documents are plain dictionaries, usually loaded
from YAML or JSON; both camelCase (``timeSignature``) and snake_case
(``time_signature``) keys are accepted.

```yaml
settings:
  tempo: 96
  key: A minor
patterns:
  bass: {notes: "A2:q A2:q C3:q E3:q"}
sections:
  verse:
    bars: 4
    tracks:
      bass: {pattern: bass, humanize: 0.2}
arrangement: [verse, verse]
```
"""

import dataclasses
import json
import logging
import os
import typing

import yaml

import etherdaw.constants
import etherdaw.constants.velocity
import etherdaw.groove
import etherdaw.pattern


logger = logging.getLogger(__name__)


class ScoreError (ValueError):
	pass


def _get (data: typing.Mapping[str, typing.Any], *names: str, default: typing.Any = None) -> typing.Any:

	for name in names:
		if name in data:
			return data[name]

	return default


@dataclasses.dataclass
class Settings:

	"""
	Score-wide settings.

	Attributes:
		tempo: Beats per minute.
		key: Key name such as ``"C major"`` or ``"F# dorian"``.
		time_signature: ``"N/D"``; beats are quarter notes, so 6/8 has 3 beats per bar.
		swing: Off-beat eighth delay, 0 (straight) to 1 (full triplet).
	"""

	tempo: float = etherdaw.constants.DEFAULT_TEMPO
	key: str = etherdaw.constants.DEFAULT_KEY
	time_signature: str = etherdaw.constants.DEFAULT_TIME_SIGNATURE
	swing: float = etherdaw.constants.DEFAULT_SWING

	def __post_init__ (self) -> None:

		if self.tempo <= 0:
			raise ValueError(f"Tempo must be positive, got {self.tempo}")

		if not 0.0 <= self.swing <= 1.0:
			raise ValueError(f"Swing must be between 0.0 and 1.0, got {self.swing}")


	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Mapping[str, typing.Any]]) -> "Settings":

		data = data or {}
		defaults = etherdaw.constants.DEFAULT_SETTINGS

		return cls(
			tempo = float(data.get("tempo", defaults["tempo"])),
			key = str(data.get("key", defaults["key"])),
			time_signature = str(_get(data, "time_signature", "timeSignature", default=defaults["time_signature"])),
			swing = float(data.get("swing", defaults["swing"])),
		)


	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"tempo": self.tempo,
			"key": self.key,
			"timeSignature": self.time_signature,
			"swing": self.swing,
		}


@dataclasses.dataclass
class Track:

	"""
	One instrument's part within a section.

	``pattern`` and ``patterns`` are alternatives; a single name behaves
	like a one-element list. ``humanize`` is an amount (0-1) or a mapping of
	per-dimension amounts (``{"timing": 0.3, "velocity": 0.1}``).

	``groove`` names a groove template applied at ``groove_amount``.
	``expression`` names an expression preset, which supplies the groove
	and humanize amounts the track does not set itself.
	"""

	pattern: typing.Optional[str] = None
	patterns: typing.Optional[typing.List[str]] = None
	velocity: float = etherdaw.constants.velocity.DEFAULT_VELOCITY
	repeat: int = 1
	humanize: typing.Union[float, typing.Dict[str, float]] = 0.0
	octave: int = 0
	transpose: int = 0
	mute: bool = False
	groove: typing.Optional[str] = None
	groove_amount: float = 1.0
	expression: typing.Optional[str] = None

	def __post_init__ (self) -> None:

		if self.repeat < 1:
			raise ValueError(f"Track repeat must be at least 1, got {self.repeat}")

		if not 0.0 <= self.velocity <= 1.0:
			raise ValueError(f"Track velocity must be between 0.0 and 1.0, got {self.velocity}")

		etherdaw.groove.Humanize.from_value(self.humanize)

		if self.groove is not None:
			etherdaw.groove.get_groove(self.groove)

		if not 0.0 <= self.groove_amount <= 1.0:
			raise ValueError(f"Groove amount must be between 0.0 and 1.0, got {self.groove_amount}")

		if self.expression is not None:
			etherdaw.groove.expression_feel(self.expression)


	@property
	def pattern_names (self) -> typing.List[str]:

		if self.patterns:
			return list(self.patterns)

		if self.pattern:
			return [self.pattern]

		return []


	def feel (self) -> typing.Tuple[typing.Optional[str], etherdaw.groove.Humanize]:

		"""The groove name and humanize amounts after applying the expression preset."""

		groove = self.groove
		humanize = etherdaw.groove.Humanize.from_value(self.humanize)

		if self.expression is not None:
			preset_groove, preset_humanize = etherdaw.groove.expression_feel(self.expression)
			if groove is None:
				groove = preset_groove
			if not humanize.active:
				humanize = preset_humanize

		return groove, humanize


	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "Track":

		patterns = data.get("patterns")
		humanize = data.get("humanize", 0.0)

		return cls(
			pattern = data.get("pattern"),
			patterns = [str(name) for name in patterns] if patterns else None,
			velocity = float(data.get("velocity", etherdaw.constants.velocity.DEFAULT_VELOCITY)),
			repeat = int(data.get("repeat", 1)),
			humanize = dict(humanize) if isinstance(humanize, typing.Mapping) else float(humanize),
			octave = int(data.get("octave", 0)),
			transpose = int(data.get("transpose", 0)),
			mute = bool(data.get("mute", False)),
			groove = data.get("groove"),
			groove_amount = float(_get(data, "groove_amount", "grooveAmount", default=1.0)),
			expression = data.get("expression"),
		)


@dataclasses.dataclass
class Section:

	"""
	A block of bars with its tracks, keyed by instrument name.

	``tempo`` and ``key`` override the running settings from this section
	on. ``density`` (0-1) is what ``density`` conditions compare against.
	"""

	bars: int
	tracks: typing.Dict[str, Track] = dataclasses.field(default_factory=dict)
	tempo: typing.Optional[float] = None
	key: typing.Optional[str] = None
	density: float = 0.5

	def __post_init__ (self) -> None:

		if self.bars < 0:
			raise ValueError(f"Section bars cannot be negative, got {self.bars}")

		if self.tempo is not None and self.tempo <= 0:
			raise ValueError(f"Section tempo must be positive, got {self.tempo}")


	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "Section":

		tempo = data.get("tempo")

		return cls(
			bars = int(data.get("bars", 4)),
			tracks = {str(name): Track.from_dict(track) for name, track in (data.get("tracks") or {}).items()},
			tempo = float(tempo) if tempo is not None else None,
			key = data.get("key"),
			density = float(data.get("density", 0.5)),
		)


@dataclasses.dataclass
class Instrument:

	"""An instrument declaration; only its name matters to compilation."""

	preset: str = ""
	volume: typing.Optional[float] = None
	pan: typing.Optional[float] = None
	effects: typing.List[typing.Dict[str, typing.Any]] = dataclasses.field(default_factory=list)
	options: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)

	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "Instrument":

		return cls(
			preset = str(data.get("preset", "")),
			volume = data.get("volume"),
			pan = data.get("pan"),
			effects = list(data.get("effects") or []),
			options = dict(data.get("options") or {}),
		)


@dataclasses.dataclass
class Score:

	settings: Settings = dataclasses.field(default_factory=Settings)
	patterns: typing.Dict[str, etherdaw.pattern.Pattern] = dataclasses.field(default_factory=dict)
	sections: typing.Dict[str, Section] = dataclasses.field(default_factory=dict)
	arrangement: typing.List[str] = dataclasses.field(default_factory=list)
	instruments: typing.Optional[typing.Dict[str, Instrument]] = None
	meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)

	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "Score":

		"""
		Build a score from a document dictionary.

		Raises:
			ScoreError: A part of the document does not fit the data model.
				The message names the part.
		"""

		if not isinstance(data, typing.Mapping):
			raise ScoreError(f"Score document must be a mapping, got {type(data).__name__}")

		try:
			settings = Settings.from_dict(data.get("settings"))
		except (TypeError, ValueError) as exc:
			raise ScoreError(f"Invalid settings: {exc}") from exc

		patterns = {}

		for name, definition in (data.get("patterns") or {}).items():
			try:
				patterns[str(name)] = etherdaw.pattern.from_dict(definition)
			except (AttributeError, ValueError) as exc:
				raise ScoreError(f'Invalid pattern "{name}": {exc}') from exc

		sections = {}

		for name, definition in (data.get("sections") or {}).items():
			try:
				sections[str(name)] = Section.from_dict(definition)
			except (AttributeError, TypeError, ValueError) as exc:
				raise ScoreError(f'Invalid section "{name}": {exc}') from exc

		instruments = data.get("instruments")

		return cls(
			settings = settings,
			patterns = patterns,
			sections = sections,
			arrangement = [str(name) for name in data.get("arrangement") or []],
			instruments = {str(name): Instrument.from_dict(value or {}) for name, value in instruments.items()} if instruments is not None else None,
			meta = dict(data.get("meta") or {}),
		)


def loads (text: str) -> Score:

	"""Parse a YAML (or JSON, which YAML accepts) document."""

	try:
		data = yaml.safe_load(text)
	except yaml.YAMLError as exc:
		raise ScoreError(f"Cannot parse score: {exc}") from exc

	return Score.from_dict(data)


def load (path: str) -> Score:

	"""
	Load a score file. ``.json`` files are read with ``json``, anything else
	with PyYAML's ``safe_load``.

	Raises:
		ScoreError: The file cannot be parsed or does not describe a score.
		OSError: The file cannot be read.
	"""

	logger.debug(f"Loading score {path}")

	with open(path, "r", encoding="utf-8") as f:
		text = f.read()

	if os.path.splitext(path)[1].lower() == ".json":
		try:
			return Score.from_dict(json.loads(text))
		except json.JSONDecodeError as exc:
			raise ScoreError(f"Cannot parse score {path}: {exc}") from exc

	return loads(text)
