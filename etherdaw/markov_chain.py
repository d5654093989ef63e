"""Markov-chain note generation.

Transition tables map a state to a row of ``{next_state: probability}``.
Rows can be given explicitly or produced by a named preset:

- ``uniform`` - every state equally likely.
- ``neighbor_weighted`` - weight ``1 / (1 + distance)`` between state indices.
- ``walking_bass`` - bass-line tendencies around ``"1"``, ``"5"``,
  ``"approach"`` and ``"rest"``.
- ``melody_stepwise`` - steps favoured over skips, skips over leaps.
- ``root_heavy`` - strong pull back to ``"1"``.

Preset rows are normalised to sum to 1; a row whose weights sum to zero
becomes uniform. An unknown preset falls back to ``uniform`` with a warning.
"""

import logging
import random
import re
import typing

import etherdaw.constants
import etherdaw.constants.velocity
import etherdaw.diagnostics
import etherdaw.intervals
import etherdaw.notation
import etherdaw.pattern
import etherdaw.sequence_utils


logger = logging.getLogger(__name__)

StateType = typing.TypeVar("StateType")

Transitions = typing.Dict[str, typing.Dict[str, float]]

ROOT = "1"
FIFTH = "5"
APPROACH = "approach"
REST = "rest"

# Chord quality -> scale used when a Markov line follows a chord.
CHORD_SCALE_MAP: typing.Dict[str, str] = {
	"maj": "major",
	"maj7": "major",
	"maj9": "major",
	"maj6": "major",
	"6": "major",
	"6/9": "major",
	"add9": "major",
	"m": "minor",
	"min": "minor",
	"m7": "dorian",
	"min7": "dorian",
	"m9": "dorian",
	"m6": "dorian",
	"m11": "dorian",
	"7": "mixolydian",
	"dom7": "mixolydian",
	"9": "mixolydian",
	"11": "mixolydian",
	"13": "mixolydian",
	"7sus4": "mixolydian",
	"7#9": "mixolydian",
	"7b9": "phrygian",
	"m7b5": "locrian",
	"half-dim": "locrian",
	"dim": "locrian",
	"dim7": "locrian",
	"sus2": "major",
	"sus4": "major",
	"aug": "major",
	"+": "major",
}

_CHORD_SYMBOL_PATTERN = re.compile(r"^([A-G][#b]?)(.*)$")
_ABSOLUTE_PITCH_PATTERN = re.compile(r"^[A-G][#b]?\d+$")
_DEGREE_PATTERN = re.compile(r"^([#b]?)(\d+)$")


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def normalize (transitions: Transitions) -> Transitions:

	"""Scale every row to sum to 1. A row summing to zero becomes uniform."""

	normalized: Transitions = {}

	for state, row in transitions.items():
		total = sum(row.values())

		if total == 0:
			normalized[state] = {target: 1.0 / len(row) for target in row}
		else:
			normalized[state] = {target: weight / total for target, weight in row.items()}

	return normalized


def _uniform (states: typing.Sequence[str]) -> Transitions:

	probability = 1.0 / len(states)

	return {state: {target: probability for target in states} for state in states}


def _neighbor_weighted (states: typing.Sequence[str]) -> Transitions:

	return {
		state: {target: 1.0 / (abs(i - j) + 1) for j, target in enumerate(states)}
		for i, state in enumerate(states)
	}


def _walking_bass (states: typing.Sequence[str]) -> Transitions:

	transitions: Transitions = {}
	has_approach = APPROACH in states
	others = max(1, len(states) - 2)

	for state in states:
		row: typing.Dict[str, float] = {}

		if state == ROOT:
			movable = [s for s in states if s not in (ROOT, REST)]
			each = 0.85 / max(1, len(movable))
			for target in states:
				if target == ROOT:
					row[target] = 0.1
				elif target == FIFTH:
					row[target] = each + 0.05
				elif target == REST:
					row[target] = 0.05
				else:
					row[target] = each

		elif state == APPROACH:
			for target in states:
				if target == ROOT:
					row[target] = 0.6
				elif target == FIFTH:
					row[target] = 0.3
				else:
					row[target] = 0.1 / others

		elif state == REST:
			for target in states:
				if target == ROOT:
					row[target] = 0.5
				elif target == REST:
					row[target] = 0.1
				else:
					row[target] = 0.4 / others

		else:
			remaining = 0.4 if has_approach else 0.6
			count = len([s for s in states if s not in (ROOT, APPROACH, state)])
			for target in states:
				if target == ROOT:
					row[target] = 0.35
				elif target == APPROACH:
					row[target] = 0.2
				elif target == state:
					row[target] = 0.05
				else:
					row[target] = remaining / max(1, count)

		transitions[state] = row

	return normalize(transitions)


def _melody_stepwise (states: typing.Sequence[str]) -> Transitions:

	transitions: Transitions = {}

	for i, state in enumerate(states):
		row: typing.Dict[str, float] = {}

		for j, target in enumerate(states):
			distance = abs(i - j)

			if distance == 0:
				row[target] = 0.05
			elif distance == 1:
				row[target] = 0.35
			elif distance == 2:
				row[target] = 0.15
			else:
				row[target] = 0.05 / distance

		transitions[state] = row

	return normalize(transitions)


def _root_heavy (states: typing.Sequence[str]) -> Transitions:

	transitions: Transitions = {}
	others = max(1, len(states) - 2)

	for state in states:
		row: typing.Dict[str, float] = {}

		for target in states:
			if state == ROOT:
				if target == ROOT:
					row[target] = 0.3
				elif target == FIFTH:
					row[target] = 0.25
				else:
					row[target] = 0.45 / others
			else:
				if target == ROOT:
					row[target] = 0.5
				elif target == state:
					row[target] = 0.1
				else:
					row[target] = 0.4 / others

		transitions[state] = row

	return normalize(transitions)


PRESETS: typing.Dict[str, typing.Callable[[typing.Sequence[str]], Transitions]] = {
	"uniform": _uniform,
	"neighbor_weighted": _neighbor_weighted,
	"walking_bass": _walking_bass,
	"melody_stepwise": _melody_stepwise,
	"root_heavy": _root_heavy,
}


def preset_transitions (
	preset: str,
	states: typing.Sequence[str],
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> Transitions:

	"""
	Build a row-stochastic transition table from a named preset.

	Parameters:
		preset: One of ``PRESETS``. Unknown names fall back to ``uniform``
			and record a warning.
		states: The state alphabet, ordered by pitch or position.
		diagnostics: Collector for the unknown-preset warning.

	Raises:
		ValueError: If ``states`` is empty.
	"""

	if not states:
		raise ValueError("Markov presets need at least one state")

	if preset not in PRESETS:
		if diagnostics is not None:
			diagnostics.warn(f'Unknown Markov preset "{preset}", using uniform')
		preset = "uniform"

	return normalize(PRESETS[preset](states))


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

class MarkovChain (typing.Generic[StateType]):

	"""
	A weighted Markov chain over arbitrary states.

	A state with no outgoing row (or a row of zero weights) stays put.
	"""

	def __init__ (
		self,
		transitions: typing.Mapping[StateType, typing.Mapping[StateType, float]],
		initial_state: typing.Optional[StateType] = None,
		rng: typing.Optional[random.Random] = None
	) -> None:

		"""
		Initialize the chain with transitions and an optional initial state.
		"""

		if not transitions:
			raise ValueError("Transitions cannot be empty")

		self.transitions = transitions
		self.rng = rng or random.Random()

		if initial_state is None:
			initial_state = next(iter(transitions))

		self.state = initial_state


	def step (self) -> StateType:

		"""
		Advance to the next state and return it.
		"""

		row = self.transitions.get(self.state)

		if not row or sum(row.values()) <= 0:
			return self.state

		self.state = etherdaw.sequence_utils.weighted_choice(list(row.items()), self.rng)

		return self.state


	def walk (self, steps: int) -> typing.List[StateType]:

		"""Return ``steps`` states, beginning with the current one."""

		if steps <= 0:
			return []

		sequence = [self.state]

		for _ in range(steps - 1):
			sequence.append(self.step())

		return sequence


# ---------------------------------------------------------------------------
# Note generation
# ---------------------------------------------------------------------------

def chord_scale_key (chord: str) -> str:

	"""Key string implied by a chord symbol (``"Dm7"`` -> ``"D dorian"``)."""

	match = _CHORD_SYMBOL_PATTERN.match(chord)

	if not match:
		return etherdaw.constants.DEFAULT_KEY

	quality = match.group(2) or "maj"

	return f"{match.group(1)} {CHORD_SCALE_MAP.get(quality, 'major')}"


def resolve_state (
	state: str,
	key: str,
	octave: int,
	next_pitch: typing.Optional[str] = None,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> typing.Optional[str]:

	"""
	Turn a state into a pitch name, or ``None`` for silence.

	Degrees above 7 continue into the next octave; ``"approach"`` sits a
	semitone below ``next_pitch`` and is silent when there is no next note.
	"""

	if state == REST:
		return None

	if state == APPROACH:
		if next_pitch is None:
			return None
		return etherdaw.notation.transpose_pitch(next_pitch, -1)

	if _ABSOLUTE_PITCH_PATTERN.match(state):
		return state

	match = _DEGREE_PATTERN.match(state)

	if match and int(match.group(2)) >= 1:
		alteration = {"#": 1, "b": -1}.get(match.group(1), 0)
		return etherdaw.intervals.degree_to_pitch(key, int(match.group(2)), octave, alteration)

	if diagnostics is not None:
		diagnostics.warn(f"Unknown Markov state: {state}")

	return None


def constrain_pitch (pitch: str, key: str) -> str:

	"""Move a pitch into the key by at most two semitones, trying upward first."""

	if etherdaw.intervals.is_in_key(pitch, key):
		return pitch

	for offset in (1, -1, 2, -2):
		candidate = etherdaw.notation.transpose_pitch(pitch, offset)
		if etherdaw.intervals.is_in_key(candidate, key):
			return candidate

	return pitch


def generate (
	config: "etherdaw.pattern.Markov",
	key: str = etherdaw.constants.DEFAULT_KEY,
	rng: typing.Optional[random.Random] = None,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> typing.List["etherdaw.pattern.Note"]:

	"""
	Walk the chain and render the visited states as notes.

	The state sequence is generated first so that ``"approach"`` states can
	look one step ahead. Each step consumes the next duration (cycled when a
	list is given); rests and silent states consume time without a note.
	Velocities vary between 0.7 and 0.9.

	Parameters:
		config: The Markov pattern.
		key: Active key; ignored when ``config.chord_scale`` is set.
		rng: Random source. A ``seed`` on the pattern takes precedence.
		diagnostics: Collector for unknown presets and states.

	Example:
		```python
		pattern = etherdaw.pattern.Markov(states=("1", "3", "5"), steps=8, preset="melody_stepwise")
		notes = generate(pattern, "A minor", random.Random(7))
		```
	"""

	if not config.states:
		if diagnostics is not None:
			diagnostics.warn("Markov pattern has no states")
		return []

	if config.seed is not None:
		rng = random.Random(config.seed)
	elif rng is None:
		rng = random.Random()

	if config.chord_scale:
		key = chord_scale_key(config.chord_scale)

	try:
		etherdaw.intervals.parse_key(key)
	except ValueError:
		if diagnostics is not None:
			diagnostics.warn(f'Invalid key "{key}" for Markov pattern, using {etherdaw.constants.DEFAULT_KEY}')
		key = etherdaw.constants.DEFAULT_KEY

	if config.transitions:
		transitions: Transitions = dict(config.transitions)
	elif config.preset:
		transitions = preset_transitions(config.preset, config.states, diagnostics)
	else:
		if diagnostics is not None:
			diagnostics.warn("Markov pattern has no transitions or preset, using uniform")
		transitions = preset_transitions("uniform", config.states)

	chain = MarkovChain(transitions, config.initial_state or config.states[0], rng)
	states = chain.walk(config.steps)

	durations = [config.duration] if isinstance(config.duration, str) else list(config.duration)

	logger.debug(f"Markov walk over {len(config.states)} states in {key}: {states}")

	notes: typing.List[etherdaw.pattern.Note] = []
	beat = 0.0

	for i, state in enumerate(states):
		duration = etherdaw.notation.parse_duration_string(durations[i % len(durations)])

		next_pitch = None
		if i + 1 < len(states):
			next_pitch = resolve_state(states[i + 1], key, config.octave)

		pitch = resolve_state(state, key, config.octave, next_pitch, diagnostics)

		if pitch is not None and config.constrain_to_scale:
			pitch = constrain_pitch(pitch, key)

		if pitch is not None:
			velocity = etherdaw.constants.velocity.DEFAULT_MARKOV_VELOCITY + rng.random() * etherdaw.constants.velocity.MARKOV_VELOCITY_SPREAD
			notes.append(etherdaw.pattern.Note(pitch=pitch, start=beat, duration=duration, velocity=velocity))

		beat += duration

	return notes


def validate (config: "etherdaw.pattern.Markov") -> typing.List[str]:

	"""
	Check a Markov pattern and return human-readable problems.

	Explicit rows should sum to 1 (within 0.01), point at known states and
	cover every state.
	"""

	problems: typing.List[str] = []

	if not config.states:
		problems.append("Markov pattern must have at least one state")

	if not config.transitions and not config.preset:
		problems.append("Markov pattern must have transitions or a preset")
		return problems

	if config.preset and config.preset not in PRESETS:
		problems.append(f'Unknown Markov preset: "{config.preset}". Valid presets: {", ".join(PRESETS)}')

	if config.transitions:

		for state, row in config.transitions.items():
			total = sum(row.values())
			if abs(total - 1.0) > 0.01:
				problems.append(f'Transitions from state "{state}" sum to {total:.3f}, should be 1.0')

			for target in row:
				if target not in config.states and target not in (REST, APPROACH):
					problems.append(f'State "{state}" has transition to unknown state "{target}"')

		for state in config.states:
			if state not in config.transitions:
				problems.append(f'State "{state}" has no outgoing transitions')

	if config.steps < 1:
		problems.append("Markov pattern must have at least 1 step")

	return problems
