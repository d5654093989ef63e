"""Timing and velocity feel: named groove templates and humanize jitter.

A groove is a repeating pattern of per-sixteenth timing offsets (in beats)
and velocity multipliers. Humanize adds bounded random jitter on top; every
random draw comes from the ``random.Random`` passed in, so a seeded
generator reproduces the same performance.
"""

import dataclasses
import random
import typing

import etherdaw.constants.velocity
import etherdaw.pattern


@dataclasses.dataclass
class Groove:

	"""
	A timing/velocity template applied to sixteenth-note grid positions.

	Parameters:
		offsets: Timing offset per grid slot, in beats. Repeats cyclically.
			Positive values delay the note; negative values push it earlier.
		velocities: Velocity scale per grid slot (1.0 = unchanged).
		grid: Grid size in beats (0.25 = 16th notes).
		name: Display name.

	Example::

		groove = Groove(offsets=[0.0, 0.08, 0.0, 0.08], velocities=[1.0, 0.7, 0.9, 0.7])
	"""

	offsets: typing.List[float]
	velocities: typing.List[float]
	grid: float = 0.25
	name: str = ""

	def __post_init__ (self) -> None:
		if not self.offsets:
			raise ValueError("offsets must not be empty")
		if not self.velocities:
			raise ValueError("velocities must not be empty")
		if self.grid <= 0:
			raise ValueError("grid must be positive")


GROOVE_TEMPLATES: typing.Dict[str, Groove] = {
	"straight": Groove([0, 0, 0, 0], [1, 0.8, 0.9, 0.8], name="Straight"),
	"shuffle": Groove([0, 0.08, 0, 0.08], [1, 0.7, 0.9, 0.7], name="Shuffle"),
	"funk": Groove([0, -0.02, 0.02, -0.01], [1, 0.9, 0.85, 0.95], name="Funk"),
	"laid_back": Groove([0.03, 0.03, 0.03, 0.03], [1, 0.85, 0.9, 0.85], name="Laid Back"),
	"pushed": Groove([-0.02, -0.02, -0.02, -0.02], [1, 0.9, 0.95, 0.9], name="Pushed"),
	"hip_hop": Groove([0, 0.05, 0, 0.07], [1, 0.75, 0.9, 0.8], name="Hip Hop"),
	"dilla": Groove([0, 0.06, -0.02, 0.09], [1, 0.7, 0.85, 0.65], name="Dilla"),
	"reggae": Groove([0, 0.04, 0, 0.06], [0.7, 0.9, 1, 0.8], name="Reggae"),
	"dnb": Groove([0, -0.01, 0.01, -0.01], [1, 0.6, 0.85, 0.55], name="Drum and Bass"),
	"trap": Groove([0, 0.02, 0, 0.03], [1, 0.65, 0.9, 0.6], name="Trap"),
	"gospel": Groove([0, 0.04, 0, 0.05], [0.9, 1, 0.85, 0.95], name="Gospel"),
	"new_orleans": Groove([0, 0.07, 0.02, 0.05], [1, 0.8, 0.9, 0.85], name="New Orleans"),
	"bossa": Groove([0, 0.03, 0, 0.04], [1, 0.75, 0.85, 0.8], name="Bossa Nova"),
	"afrobeat": Groove([0, 0.02, 0.04, 0.01], [1, 0.85, 0.9, 0.8], name="Afrobeat"),
}


@dataclasses.dataclass(frozen=True)
class ExpressionPreset:

	"""A ready-made performance character: humanize amount, groove and velocity spread."""

	humanize: float
	groove: str
	velocity_variance: float


EXPRESSION_PRESETS: typing.Dict[str, ExpressionPreset] = {
	"mechanical": ExpressionPreset(0.0, "straight", 0.0),
	"tight": ExpressionPreset(0.01, "straight", 0.02),
	"natural": ExpressionPreset(0.03, "straight", 0.05),
	"romantic": ExpressionPreset(0.04, "laid_back", 0.08),
	"jazzy": ExpressionPreset(0.03, "dilla", 0.1),
	"funk": ExpressionPreset(0.02, "funk", 0.06),
	"gospel": ExpressionPreset(0.03, "gospel", 0.08),
	"aggressive": ExpressionPreset(0.01, "pushed", 0.04),
}


def expression_feel (name: str) -> typing.Tuple[str, "Humanize"]:

	"""
	Groove name and humanize amounts for an expression preset.

	The preset's humanize value is a timing deviation in beats and its
	velocity variance a velocity deviation; both are expressed as amounts
	of the humanize maxima, capped at 1.
	"""

	if name not in EXPRESSION_PRESETS:
		raise ValueError(f"Unknown expression preset: {name!r}. Available: {', '.join(EXPRESSION_PRESETS)}")

	preset = EXPRESSION_PRESETS[name]

	feel = Humanize(
		timing = min(1.0, preset.humanize / etherdaw.constants.velocity.HUMANIZE_TIMING),
		velocity = min(1.0, preset.velocity_variance / etherdaw.constants.velocity.HUMANIZE_VELOCITY),
	)

	return preset.groove, feel


def get_groove (groove: typing.Union[str, Groove]) -> Groove:

	"""Look up a named template, or pass a ``Groove`` through."""

	if isinstance(groove, Groove):
		return groove

	if groove not in GROOVE_TEMPLATES:
		raise ValueError(f"Unknown groove: {groove!r}. Available: {', '.join(sorted(GROOVE_TEMPLATES))}")

	return GROOVE_TEMPLATES[groove]


def apply_groove (
	notes: typing.Iterable[etherdaw.pattern.Note],
	groove: typing.Union[str, Groove],
	strength: float = 1.0
) -> typing.List[etherdaw.pattern.Note]:

	"""
	Shift timing and scale velocity of each note according to its grid slot.

	Parameters:
		notes: Beat-positioned notes.
		groove: A template name from ``GROOVE_TEMPLATES`` or a ``Groove``.
		strength: How much of the groove to apply (0.0-1.0). Intermediate
			values blend between straight timing and the full template.
	"""

	if not 0.0 <= strength <= 1.0:
		raise ValueError("strength must be between 0.0 and 1.0")

	template = get_groove(groove)
	slots_per_beat = max(1, int(round(1.0 / template.grid)))
	result = []

	for note in notes:
		slot = int((note.start % 1) * slots_per_beat) % slots_per_beat
		offset = template.offsets[slot % len(template.offsets)] * strength
		scale = 1.0 + (template.velocities[slot % len(template.velocities)] - 1.0) * strength

		result.append(dataclasses.replace(
			note,
			start = max(0.0, note.start + offset),
			velocity = min(1.0, max(0.0, note.velocity * scale)),
		))

	return result


# ---------------------------------------------------------------------------
# Humanize
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Humanize:

	"""
	Per-dimension humanize amounts, each between 0 and 1.

	A bare number in a score applies the same amount to all three.
	"""

	timing: float = 0.0
	velocity: float = 0.0
	duration: float = 0.0

	def __post_init__ (self) -> None:

		for name in ("timing", "velocity", "duration"):
			value = getattr(self, name)
			if not 0.0 <= value <= 1.0:
				raise ValueError(f"Humanize {name} must be between 0.0 and 1.0, got {value}")


	@classmethod
	def from_value (cls, value: typing.Union[None, float, typing.Mapping[str, float], "Humanize"]) -> "Humanize":

		"""Accept a scalar, a mapping of per-dimension amounts, or ``None``."""

		if value is None:
			return cls()

		if isinstance(value, Humanize):
			return value

		if isinstance(value, typing.Mapping):
			return cls(
				timing = float(value.get("timing", 0.0)),
				velocity = float(value.get("velocity", 0.0)),
				duration = float(value.get("duration", 0.0)),
			)

		amount = float(value)

		return cls(timing=amount, velocity=amount, duration=amount)


	@property
	def active (self) -> bool:

		return self.timing > 0 or self.velocity > 0 or self.duration > 0


def _jitter (rng: random.Random) -> float:

	return rng.random() * 2 - 1


def humanize_timing (beat: float, amount: float, rng: random.Random, max_deviation: float = etherdaw.constants.velocity.HUMANIZE_TIMING) -> float:

	if amount == 0:
		return beat

	return max(0.0, beat + _jitter(rng) * max_deviation * amount)


def humanize_velocity (velocity: float, amount: float, rng: random.Random, max_deviation: float = etherdaw.constants.velocity.HUMANIZE_VELOCITY) -> float:

	if amount == 0:
		return velocity

	return min(1.0, max(0.0, velocity + _jitter(rng) * max_deviation * amount))


def humanize_duration (duration: float, amount: float, rng: random.Random, max_deviation: float = etherdaw.constants.velocity.HUMANIZE_DURATION) -> float:

	if amount == 0:
		return duration

	return max(etherdaw.constants.velocity.MIN_HUMANIZED_DURATION, duration * (1 + _jitter(rng) * max_deviation * amount))


def humanize (
	notes: typing.Iterable[etherdaw.pattern.Note],
	amount: typing.Union[float, typing.Mapping[str, float], Humanize],
	rng: random.Random
) -> typing.List[etherdaw.pattern.Note]:

	"""
	Jitter timing, velocity and duration of every note.

	Timing moves by at most 0.05 beats, velocity by 0.1 and duration by 5%,
	each scaled by its amount. Starts stay non-negative and velocities stay
	within 0-1.
	"""

	settings = Humanize.from_value(amount)

	if not settings.active:
		return list(notes)

	return [
		dataclasses.replace(
			note,
			start = humanize_timing(note.start, settings.timing, rng),
			velocity = humanize_velocity(note.velocity, settings.velocity, rng),
			duration = humanize_duration(note.duration, settings.duration, rng),
		)
		for note in notes
	]
