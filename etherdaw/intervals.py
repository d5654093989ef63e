"""Scales, keys and scale-degree arithmetic.

Keys are written as a root and a mode, ``"C major"``, ``"F# minor"``,
``"D dorian"``; a bare root means major. Scale names accept a few aliases
(``"natural_minor"``, ``"pent"``, ``"harm_minor"``).
"""

import re
import typing

import etherdaw.chords
import etherdaw.notation


SCALE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 2, 4, 5, 7, 9, 11],
	"ionian": [0, 2, 4, 5, 7, 9, 11],
	"dorian": [0, 2, 3, 5, 7, 9, 10],
	"phrygian": [0, 1, 3, 5, 7, 8, 10],
	"lydian": [0, 2, 4, 6, 7, 9, 11],
	"mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"minor": [0, 2, 3, 5, 7, 8, 10],
	"aeolian": [0, 2, 3, 5, 7, 8, 10],
	"locrian": [0, 1, 3, 5, 6, 8, 10],
	"harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
	"melodic_minor": [0, 2, 3, 5, 7, 9, 11],
	"pentatonic_major": [0, 2, 4, 7, 9],
	"pentatonic_minor": [0, 3, 5, 7, 10],
	"blues": [0, 3, 5, 6, 7, 10],
	"blues_major": [0, 2, 3, 4, 7, 9],
	"whole_tone": [0, 2, 4, 6, 8, 10],
	"diminished": [0, 2, 3, 5, 6, 8, 9, 11],
	"diminished_half_whole": [0, 1, 3, 4, 6, 7, 9, 10],
	"chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
	"bebop_dominant": [0, 2, 4, 5, 7, 9, 10, 11],
	"bebop_major": [0, 2, 4, 5, 7, 8, 9, 11],
	"altered": [0, 1, 3, 4, 6, 8, 10],
}

SCALE_ALIASES: typing.Dict[str, str] = {
	"nat_minor": "minor",
	"natural_minor": "minor",
	"min": "minor",
	"m": "minor",
	"maj": "major",
	"pent": "pentatonic_major",
	"pent_major": "pentatonic_major",
	"pent_minor": "pentatonic_minor",
	"harm_minor": "harmonic_minor",
	"mel_minor": "melodic_minor",
}

_KEY_PATTERN = re.compile(r"^\s*([A-Ga-g][#b]?)\s*(.*?)\s*$")


def normalize_scale_name (name: str) -> str:

	"""
	Resolve aliases and spacing to a key of ``SCALE_INTERVALS``.

	``"M"`` is major; otherwise matching is case-insensitive.

	Raises:
		ValueError: Unknown scale.
	"""

	if name == "M" or name == "":
		return "major"

	normalized = re.sub(r"\s+", "_", name.strip().lower())
	normalized = SCALE_ALIASES.get(normalized, normalized)

	if normalized not in SCALE_INTERVALS:
		raise ValueError(f"Unknown scale: {name!r}. Available scales: {', '.join(SCALE_INTERVALS)}")

	return normalized


def get_scale_intervals (name: str) -> typing.List[int]:

	"""Return the semitone intervals of a named scale."""

	return list(SCALE_INTERVALS[normalize_scale_name(name)])


def parse_key (key: str) -> typing.Tuple[int, str]:

	"""
	Split a key string into its root pitch class and normalised mode.

	Raises:
		ValueError: If the root or mode is not recognised.

	Example:
		```python
		parse_key("A minor")   # (9, "minor")
		parse_key("Bb")        # (10, "major")
		parse_key("e dorian")  # (4, "dorian")
		```
	"""

	match = _KEY_PATTERN.match(key)

	if not match:
		raise ValueError(f"Invalid key: {key!r}")

	root = match.group(1)
	root = root[0].upper() + root[1:]

	return etherdaw.chords.key_name_to_pc(root), normalize_scale_name(match.group(2))


def scale_pitch_classes (key_pc: int, mode: str = "major") -> typing.List[int]:

	"""
	Return the pitch classes (0–11) that belong to a key and mode.

	Example:
		```python
		scale_pitch_classes(9, "minor")  # → [9, 11, 0, 2, 4, 5, 7]
		```
	"""

	return [(key_pc + interval) % 12 for interval in get_scale_intervals(mode)]


def key_pitch_classes (key: str) -> typing.List[int]:

	"""Pitch classes of a key string such as ``"D dorian"``."""

	key_pc, mode = parse_key(key)

	return scale_pitch_classes(key_pc, mode)


def quantize_pitch (pitch: int, scale_pcs: typing.Sequence[int]) -> int:

	"""
	Snap a MIDI pitch to the nearest note in the given scale.

	Searches outward in semitone steps from the input pitch.  When two
	notes are equidistant (e.g. C# between C and D in C major), the
	upward direction is preferred.

	Example:
		```python
		scale = scale_pitch_classes(0, "major")
		quantize_pitch(61, scale)  # → 62
		```
	"""

	pc = pitch % 12

	if pc in scale_pcs:
		return pitch

	for offset in range(1, 7):
		if (pc + offset) % 12 in scale_pcs:
			return pitch + offset
		if (pc - offset) % 12 in scale_pcs:
			return pitch - offset

	return pitch


def snap_to_scale (pitch: str, key: str) -> str:

	"""Snap a pitch name into a key (``snap_to_scale("C#4", "C major")`` → ``"D4"``)."""

	midi = etherdaw.notation.pitch_to_midi(pitch)

	return etherdaw.notation.midi_to_pitch(quantize_pitch(midi, key_pitch_classes(key)))


def is_in_key (pitch: str, key: str) -> bool:

	return etherdaw.notation.pitch_to_midi(pitch) % 12 in key_pitch_classes(key)


def degree_to_midi (key: str, degree: int, octave: int = 4, alteration: int = 0) -> int:

	"""
	Resolve a 1-based scale degree in a key to a MIDI note.

	Degrees beyond the scale length continue into higher octaves (degree 8
	of a seven-note scale is the tonic an octave up). ``alteration``
	raises or lowers the result by semitones.

	Raises:
		ValueError: For degrees below 1 or an invalid key.

	Example:
		```python
		degree_to_midi("C major", 3)        # 64 (E4)
		degree_to_midi("A minor", 8, 3)     # 69 (A4)
		```
	"""

	if degree < 1:
		raise ValueError(f"Scale degrees start at 1, got {degree}")

	key_pc, mode = parse_key(key)
	intervals = get_scale_intervals(mode)

	octave_offset, index = divmod(degree - 1, len(intervals))

	return (octave + 1) * 12 + key_pc + intervals[index] + 12 * octave_offset + alteration


def degree_to_pitch (key: str, degree: int, octave: int = 4, alteration: int = 0) -> str:

	"""Pitch-name version of ``degree_to_midi``."""

	return etherdaw.notation.midi_to_pitch(degree_to_midi(key, degree, octave, alteration))


def scale_notes (key: str, octave: int = 4) -> typing.List[str]:

	"""One octave of pitch names for a key, starting on the tonic."""

	key_pc, mode = parse_key(key)
	root_midi = (octave + 1) * 12 + key_pc

	return [etherdaw.notation.midi_to_pitch(root_midi + interval) for interval in get_scale_intervals(mode)]
