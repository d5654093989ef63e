"""Voice leading across chord progressions, and voice-leading validation.

``voice_lead`` assigns concrete pitches to each voice (bass upward) for every
chord of a progression. Candidate voicings are all in-range combinations of
the chord's pitch classes; a beam search then picks the sequence with the
least total motion that avoids whatever the style forbids::

    result = voice_lead(["Dm7", "G7", "Cmaj7"], voices=4, style="bach")
    [v.notes for v in result.voicings]

``validate_in_context`` checks an existing voicing sequence and returns
severity-tagged ``Issue`` records rather than failing. Callers decide what
to reject.
"""

import dataclasses
import itertools
import logging
import typing

import etherdaw.chords
import etherdaw.diagnostics
import etherdaw.intervals
import etherdaw.notation


logger = logging.getLogger(__name__)

VOICE_NAMES = ("bass", "tenor", "alto", "soprano")

# Ranges used when generating voicings (MIDI notes, inclusive).
DEFAULT_RANGES: typing.Dict[str, typing.Tuple[int, int]] = {
	"bass": (28, 48),
	"tenor": (36, 55),
	"alto": (43, 62),
	"soprano": (48, 79),
}

# Typical choral ranges used when validating.
VALIDATION_RANGES: typing.Dict[str, typing.Tuple[int, int]] = {
	"bass": (40, 60),
	"tenor": (48, 67),
	"alto": (53, 74),
	"soprano": (60, 81),
}

CONSTRAINT_PRESETS: typing.Dict[str, typing.List[str]] = {
	"bach": [
		"no_parallel_fifths",
		"no_parallel_octaves",
		"resolve_leading_tones",
		"resolve_sevenths",
		"smooth_motion",
		"contrary_outer_motion",
		"avoid_voice_crossing",
	],
	"jazz": ["smooth_motion", "avoid_voice_crossing"],
	"pop": ["smooth_motion"],
	"custom": [],
}

MAX_VOICINGS = 1000
BEAM_WIDTH = 50
FALLBACK_PENALTY = 100
CONTRARY_MOTION_PENALTY = 10


@dataclasses.dataclass
class Voicing:

	chord: str
	notes: typing.List[str]


@dataclasses.dataclass
class VoiceLeadingResult:

	voicings: typing.List[Voicing]
	warnings: typing.List[str] = dataclasses.field(default_factory=list)


# ---------------------------------------------------------------------------
# Motion checks
# ---------------------------------------------------------------------------

def _sign (value: int) -> int:

	return (value > 0) - (value < 0)


def _parallel (first: typing.Sequence[int], second: typing.Sequence[int], interval: int) -> typing.List[typing.Tuple[int, int]]:

	"""Voice pairs that hold ``interval`` (mod 12) in both chords while moving the same way."""

	pairs = []

	for i, j in itertools.combinations(range(len(first)), 2):
		if abs(first[j] - first[i]) % 12 != interval or abs(second[j] - second[i]) % 12 != interval:
			continue

		motion_i = second[i] - first[i]
		motion_j = second[j] - first[j]

		if motion_i != 0 and motion_j != 0 and _sign(motion_i) == _sign(motion_j):
			pairs.append((i, j))

	return pairs


def has_parallel_fifths (first: typing.Sequence[int], second: typing.Sequence[int]) -> bool:

	return bool(_parallel(first, second, 7))


def has_parallel_octaves (first: typing.Sequence[int], second: typing.Sequence[int]) -> bool:

	return bool(_parallel(first, second, 0))


def has_voice_crossing (voicing: typing.Sequence[int]) -> bool:

	"""True when any voice is at or above the voice above it."""

	return any(low >= high for low, high in zip(voicing, voicing[1:]))


def total_motion (first: typing.Sequence[int], second: typing.Sequence[int]) -> int:

	return sum(abs(b - a) for a, b in zip(first, second))


def has_contrary_outer_motion (first: typing.Sequence[int], second: typing.Sequence[int]) -> bool:

	if len(first) < 2:
		return True

	bass = second[0] - first[0]
	soprano = second[-1] - first[-1]

	return bass != 0 and soprano != 0 and _sign(bass) != _sign(soprano)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _midi (value: typing.Union[int, str]) -> int:

	if isinstance(value, str):
		return etherdaw.notation.pitch_to_midi(value)

	return int(value)


def voice_ranges (
	voices: int,
	overrides: typing.Optional[typing.Mapping[str, typing.Tuple[typing.Union[int, str], typing.Union[int, str]]]] = None
) -> typing.List[typing.Tuple[int, int]]:

	"""
	MIDI ranges for ``voices`` voices, bass first.

	Overrides are keyed by voice name and may use pitch names (``"E2"``).
	Voices beyond the four named ones get ``36 + 12i`` to ``60 + 12i``.
	"""

	ranges = []

	for i in range(voices):
		name = VOICE_NAMES[i] if i < len(VOICE_NAMES) else f"voice{i}"

		if overrides and name in overrides:
			low, high = overrides[name]
			ranges.append((_midi(low), _midi(high)))
		elif name in DEFAULT_RANGES:
			ranges.append(DEFAULT_RANGES[name])
		else:
			ranges.append((36 + i * 12, 60 + i * 12))

	return ranges


def candidate_voicings (chord_notes: typing.Sequence[str], ranges: typing.Sequence[typing.Tuple[int, int]]) -> typing.List[typing.Tuple[int, ...]]:

	"""
	All voicings with every voice on a chord tone inside its range.

	Each voicing must contain the chord's first three pitch classes (root,
	third, fifth in root position). At most ``MAX_VOICINGS`` are returned.
	"""

	pitch_classes = [etherdaw.notation.pitch_to_midi(note) % 12 for note in chord_notes]
	required = set(pitch_classes[:3])
	options = [
		[midi for midi in range(low, high + 1) if midi % 12 in pitch_classes]
		for low, high in ranges
	]

	voicings = []

	for voicing in itertools.product(*options):
		if required <= {midi % 12 for midi in voicing}:
			voicings.append(voicing)
			if len(voicings) >= MAX_VOICINGS:
				break

	return voicings


def score_transition (
	previous: typing.Sequence[int],
	current: typing.Sequence[int],
	constraints: typing.Collection[str]
) -> typing.Tuple[bool, float]:

	"""
	Return (valid, score) for moving between two voicings. Higher is better.

	Parallel perfect intervals and crossing invalidate a move when their
	constraint is active; missing contrary outer motion and total motion
	only lower the score.
	"""

	valid = True
	score = 0.0

	if "no_parallel_fifths" in constraints and has_parallel_fifths(previous, current):
		valid = False

	if "no_parallel_octaves" in constraints and has_parallel_octaves(previous, current):
		valid = False

	if "avoid_voice_crossing" in constraints and has_voice_crossing(current):
		valid = False

	if "contrary_outer_motion" in constraints and not has_contrary_outer_motion(previous, current):
		score -= CONTRARY_MOTION_PENALTY

	if "smooth_motion" in constraints:
		score -= total_motion(previous, current)

	return valid, score


def best_sequence (
	candidates: typing.Sequence[typing.Sequence[typing.Tuple[int, ...]]],
	constraints: typing.Collection[str],
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> typing.List[typing.Tuple[int, ...]]:

	"""
	Beam search for the highest scoring path through per-chord candidates.

	When no candidate satisfies the constraints at some chord, every
	candidate is admitted with a heavy penalty and a warning is recorded.
	"""

	if not candidates:
		return []

	beam: typing.List[typing.Tuple[float, typing.List[typing.Tuple[int, ...]]]] = [(0.0, [v]) for v in candidates[0]]

	for index in range(1, len(candidates)):
		next_beam = []

		for score, path in beam:
			for voicing in candidates[index]:
				valid, delta = score_transition(path[-1], voicing, constraints)
				if valid:
					next_beam.append((score + delta, path + [voicing]))

		if not next_beam:
			if diagnostics is not None:
				diagnostics.warn(f"No valid voicings satisfy all constraints at chord {index}")
			next_beam = [
				(score - FALLBACK_PENALTY, path + [voicing])
				for score, path in beam
				for voicing in candidates[index]
			]

		next_beam.sort(key=lambda entry: entry[0], reverse=True)
		beam = next_beam[:BEAM_WIDTH]

	return beam[0][1]


def effective_constraints (style: str, constraints: typing.Optional[typing.Sequence[str]] = None) -> typing.List[str]:

	"""The style's preset constraints followed by any extras, without duplicates."""

	combined = []

	if style != "custom":
		combined.extend(CONSTRAINT_PRESETS.get(style, []))

	combined.extend(constraints or [])

	return list(dict.fromkeys(combined))


def voice_lead (
	progression: typing.Sequence[str],
	voices: int = 4,
	style: str = "jazz",
	constraints: typing.Optional[typing.Sequence[str]] = None,
	ranges: typing.Optional[typing.Mapping[str, typing.Tuple[typing.Union[int, str], typing.Union[int, str]]]] = None,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> VoiceLeadingResult:

	"""
	Voice a chord progression.

	Parameters:
		progression: Bare chord symbols (``"Dm7"``, ``"G7/B"``).
		voices: Number of voices, bass first.
		style: ``bach``, ``jazz``, ``pop`` or ``custom``; selects constraints.
		constraints: Extra constraint names added to the style's.
		ranges: Per-voice range overrides.
		diagnostics: Collector for constraint relaxations.

	Returns:
		The chosen voicings. If some chord has no candidate voicing at all,
		every chord falls back to its plain chord tones and the result
		carries a warning.

	Raises:
		ChordParseError: A chord symbol cannot be parsed.
	"""

	active = effective_constraints(style, constraints)
	voice_range = voice_ranges(voices, ranges)
	chord_notes = [etherdaw.chords.get_chord_notes(chord, 3) for chord in progression]
	candidates = [candidate_voicings(notes, voice_range) for notes in chord_notes]

	for chord, options in zip(progression, candidates):
		if not options:
			logger.debug(f"No voicing of {chord} fits {voice_range}")
			message = "Could not find valid voicing sequence for all chords"
			if diagnostics is not None:
				diagnostics.warn(message)
			return VoiceLeadingResult(
				voicings = [Voicing(chord, notes) for chord, notes in zip(progression, chord_notes)],
				warnings = [message],
			)

	path = best_sequence(candidates, active, diagnostics)

	return VoiceLeadingResult(
		voicings = [
			Voicing(chord, [etherdaw.notation.midi_to_pitch(midi) for midi in voicing])
			for chord, voicing in zip(progression, path)
		],
	)


def validate_config (progression: typing.Sequence[str], voices: int, style: str) -> typing.List[str]:

	problems = []

	if not progression:
		problems.append("Voice leading must have a chord progression")

	if not 2 <= voices <= 6:
		problems.append(f"Voice count {voices} should be between 2 and 6")

	if style not in CONSTRAINT_PRESETS:
		problems.append(f"Unknown style: {style}. Valid: {', '.join(CONSTRAINT_PRESETS)}")

	return problems


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class Issue:

	"""One voice-leading or harmony problem found by validation."""

	type: str
	message: str
	severity: str
	beat: typing.Optional[float] = None
	voices: typing.List[int] = dataclasses.field(default_factory=list)
	notes: typing.List[str] = dataclasses.field(default_factory=list)
	suggestion: typing.Optional[str] = None


@dataclasses.dataclass
class VoiceState:

	"""Pitches sounding at a beat, bass first."""

	beat: float
	voices: typing.List[str]


@dataclasses.dataclass
class ValidationConfig:

	allow_parallel_fifths: bool = False
	allow_parallel_octaves: bool = False
	allow_voice_crossing: bool = False
	max_voice_spacing: int = 24
	prefer_contrary_motion: bool = True
	voice_ranges: typing.Dict[str, typing.Tuple[typing.Union[int, str], typing.Union[int, str]]] = dataclasses.field(default_factory=dict)


def _parallel_issues (first: VoiceState, second: VoiceState, interval: int, kind: str, label: str) -> typing.List[Issue]:

	low = [etherdaw.notation.pitch_to_midi(p) for p in first.voices]
	high = [etherdaw.notation.pitch_to_midi(p) for p in second.voices]

	return [
		Issue(
			type = kind,
			message = f"Parallel {label} between voices {i + 1} and {j + 1}",
			severity = etherdaw.diagnostics.WARNING,
			beat = second.beat,
			voices = [i, j],
			notes = [first.voices[i], first.voices[j], second.voices[i], second.voices[j]],
			suggestion = f"Use contrary or oblique motion to avoid parallel {label}",
		)
		for i, j in _parallel(low, high, interval)
	]


def _crossing_issues (state: VoiceState) -> typing.List[Issue]:

	midi = [etherdaw.notation.pitch_to_midi(p) for p in state.voices]
	issues = []

	for i in range(len(midi) - 1):
		if midi[i] >= midi[i + 1]:
			issues.append(Issue(
				type = "voice-crossing",
				message = f"Voice {i + 1} crosses above voice {i + 2}",
				severity = etherdaw.diagnostics.WARNING,
				beat = state.beat,
				voices = [i, i + 1],
				notes = [state.voices[i], state.voices[i + 1]],
				suggestion = "Rearrange voices to maintain proper ordering",
			))

	return issues


def _spacing_issues (state: VoiceState, max_spacing: int) -> typing.List[Issue]:

	midi = [etherdaw.notation.pitch_to_midi(p) for p in state.voices]
	issues = []

	for i in range(len(midi) - 1):
		spacing = abs(midi[i + 1] - midi[i])
		if spacing > max_spacing:
			issues.append(Issue(
				type = "excessive-spacing",
				message = f"Spacing of {spacing} semitones between voices {i + 1} and {i + 2} exceeds maximum of {max_spacing}",
				severity = etherdaw.diagnostics.INFO,
				beat = state.beat,
				voices = [i, i + 1],
				notes = [state.voices[i], state.voices[i + 1]],
				suggestion = "Consider adding inner voices or redistributing voicing",
			))

	return issues


def _outer_motion_issues (first: VoiceState, second: VoiceState) -> typing.List[Issue]:

	if len(first.voices) < 2 or len(second.voices) < 2:
		return []

	bass = etherdaw.notation.pitch_to_midi(second.voices[0]) - etherdaw.notation.pitch_to_midi(first.voices[0])
	soprano = etherdaw.notation.pitch_to_midi(second.voices[-1]) - etherdaw.notation.pitch_to_midi(first.voices[-1])

	if bass == 0 or soprano == 0 or _sign(bass) != _sign(soprano):
		return []

	interval = abs(etherdaw.notation.pitch_to_midi(second.voices[-1]) - etherdaw.notation.pitch_to_midi(second.voices[0])) % 12

	if interval not in (0, 7):
		return []

	return [Issue(
		type = "similar-motion-to-perfect",
		message = "Similar motion in outer voices approaching a perfect interval",
		severity = etherdaw.diagnostics.INFO,
		beat = second.beat,
		voices = [0, len(first.voices) - 1],
		suggestion = "Use contrary or oblique motion when approaching perfect intervals",
	)]


def _range_issues (state: VoiceState, ranges: typing.Mapping[str, typing.Tuple[int, int]]) -> typing.List[Issue]:

	issues = []

	for i, pitch in enumerate(state.voices):
		name = VOICE_NAMES[i] if i < len(VOICE_NAMES) else f"voice{i + 1}"

		if name not in ranges:
			continue

		low, high = ranges[name]
		midi = etherdaw.notation.pitch_to_midi(pitch)
		span = f"{etherdaw.notation.midi_to_pitch(low)}-{etherdaw.notation.midi_to_pitch(high)}"

		if midi < low:
			issues.append(Issue(
				type = "range-low",
				message = f"{name} ({pitch}) is below typical range ({span})",
				severity = etherdaw.diagnostics.INFO,
				beat = state.beat,
				voices = [i],
				notes = [pitch],
				suggestion = f"Move {name} up to be within range",
			))
		elif midi > high:
			issues.append(Issue(
				type = "range-high",
				message = f"{name} ({pitch}) is above typical range ({span})",
				severity = etherdaw.diagnostics.INFO,
				beat = state.beat,
				voices = [i],
				notes = [pitch],
				suggestion = f"Move {name} down to be within range",
			))

	return issues


def check_voice_leading (states: typing.Sequence[VoiceState], config: typing.Optional[ValidationConfig] = None) -> typing.List[Issue]:

	"""
	Check a sequence of voicings for common part-writing problems.

	Per chord: voice crossing, spacing wider than ``max_voice_spacing`` and
	notes outside typical ranges. Between chords: parallel fifths and
	octaves, and similar outer-voice motion into a perfect interval.
	"""

	config = config or ValidationConfig()
	ranges = dict(VALIDATION_RANGES)

	for name, (low, high) in config.voice_ranges.items():
		ranges[name] = (_midi(low), _midi(high))

	issues: typing.List[Issue] = []

	for state in states:
		if not config.allow_voice_crossing:
			issues.extend(_crossing_issues(state))
		if config.max_voice_spacing:
			issues.extend(_spacing_issues(state, config.max_voice_spacing))
		issues.extend(_range_issues(state, ranges))

	for first, second in zip(states, states[1:]):
		if not config.allow_parallel_fifths:
			issues.extend(_parallel_issues(first, second, 7, "parallel-fifths", "fifths"))
		if not config.allow_parallel_octaves:
			issues.extend(_parallel_issues(first, second, 0, "parallel-octaves", "octaves"))
		if config.prefer_contrary_motion:
			issues.extend(_outer_motion_issues(first, second))

	return issues


def in_key (notes: typing.Sequence[str], key: str) -> typing.List[Issue]:

	"""An ``out-of-key`` warning per note outside ``key``; an invalid key is one error."""

	try:
		allowed = etherdaw.intervals.key_pitch_classes(key)
	except ValueError:
		return [Issue(type="invalid-key", message=f"Invalid key: {key}", severity=etherdaw.diagnostics.ERROR)]

	issues = []

	for note in notes:
		if etherdaw.notation.pitch_to_midi(note) % 12 not in allowed:
			issues.append(Issue(
				type = "out-of-key",
				message = f"{note.rstrip('-0123456789')} is not in {key}",
				severity = etherdaw.diagnostics.WARNING,
				notes = [note],
				suggestion = "Consider if this is an intentional chromatic note or accidental",
			))

	return issues


def doubled_leading_tone (state: VoiceState, key: str) -> typing.List[Issue]:

	"""Flag a leading tone (a semitone below the tonic) that appears in more than one voice."""

	try:
		root_pc, _ = etherdaw.intervals.parse_key(key)
	except ValueError:
		return []

	leading = (root_pc + 11) % 12
	doubled = [p for p in state.voices if etherdaw.notation.pitch_to_midi(p) % 12 == leading]

	if len(doubled) <= 1:
		return []

	return [Issue(
		type = "doubled-leading-tone",
		message = f"Leading tone is doubled (appears {len(doubled)} times)",
		severity = etherdaw.diagnostics.WARNING,
		beat = state.beat,
		notes = doubled,
		suggestion = "Avoid doubling the leading tone; double the root or fifth instead",
	)]


def validate_in_context (
	states: typing.Sequence[VoiceState],
	key: str,
	config: typing.Optional[ValidationConfig] = None
) -> typing.List[Issue]:

	"""Voice-leading checks plus key membership and leading-tone doubling per chord."""

	issues = check_voice_leading(states, config)

	for state in states:
		issues.extend(in_key(state.voices, key))
		issues.extend(doubled_leading_tone(state, key))

	return issues


def has_parallel_motion_issues (first: typing.Sequence[str], second: typing.Sequence[str]) -> bool:

	low = [etherdaw.notation.pitch_to_midi(p) for p in first]
	high = [etherdaw.notation.pitch_to_midi(p) for p in second]

	return has_parallel_fifths(low, high) or has_parallel_octaves(low, high)


def summarize_issues (issues: typing.Iterable[Issue]) -> typing.Dict[str, typing.Any]:

	"""Count issues by severity and by type."""

	summary: typing.Dict[str, typing.Any] = {"errors": 0, "warnings": 0, "info": 0, "by_type": {}}

	for issue in issues:
		if issue.severity == etherdaw.diagnostics.ERROR:
			summary["errors"] += 1
		elif issue.severity == etherdaw.diagnostics.WARNING:
			summary["warnings"] += 1
		else:
			summary["info"] += 1

		summary["by_type"][issue.type] = summary["by_type"].get(issue.type, 0) + 1

	return summary
