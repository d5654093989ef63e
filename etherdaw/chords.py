"""Chord definitions, voicings and the chord-token parser.

A chord token names a root, a quality, an optional voicing, an optional slash
bass and a duration::

    Cmaj7:w         C major seventh, whole note
    Am:h.           A minor, dotted half
    F#m7b5:q        half-diminished
    Dm9@drop2:w     minor ninth in drop-2 voicing
    C/G:h           C major over G
    G7#9:q>         accented, quality built from 7 plus a #9 alteration

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to note names (sharps)
- `CHORD_INTERVALS`: Maps chord quality symbols to interval lists (semitones from root)
- `VOICINGS`: Maps a quality to its named voicings (interval lists, may reach below the root)
- `PROGRESSIONS`: Named progressions as scale degrees

Qualities missing from `CHORD_INTERVALS` may still resolve when they are a
known quality followed by alterations of the 5th, 9th, 11th or 13th
(``"m9b5"``, ``"13#11b9"``).
"""

import dataclasses
import re
import typing

import etherdaw.constants
import etherdaw.constants.velocity
import etherdaw.diagnostics
import etherdaw.notation


class ChordParseError (ValueError):
	pass


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"Fb": 4,
	"E#": 5,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"Cb": 11,
	"B#": 0,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]


def key_name_to_pc (key_name: str) -> int:

	"""Validate a note name and return its pitch class (0–11).

	Raises:
		ValueError: If the name is not recognised.

	Example:
		```python
		key_name_to_pc("C")   # → 0
		key_name_to_pc("Bb")  # → 10
		```
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown key name: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {

	# Triads
	"": [0, 4, 7],
	"maj": [0, 4, 7],
	"M": [0, 4, 7],
	"min": [0, 3, 7],
	"m": [0, 3, 7],
	"dim": [0, 3, 6],
	"aug": [0, 4, 8],
	"+": [0, 4, 8],
	"sus2": [0, 2, 7],
	"sus4": [0, 5, 7],
	"sus": [0, 5, 7],

	# Sevenths
	"maj7": [0, 4, 7, 11],
	"M7": [0, 4, 7, 11],
	"7": [0, 4, 7, 10],
	"dom7": [0, 4, 7, 10],
	"min7": [0, 3, 7, 10],
	"m7": [0, 3, 7, 10],
	"dim7": [0, 3, 6, 9],
	"o7": [0, 3, 6, 9],
	"m7b5": [0, 3, 6, 10],
	"aug7": [0, 4, 8, 10],
	"+7": [0, 4, 8, 10],
	"augmaj7": [0, 4, 8, 11],
	"maj7#5": [0, 4, 8, 11],
	"+M7": [0, 4, 8, 11],
	"minmaj7": [0, 3, 7, 11],
	"mM7": [0, 3, 7, 11],
	"7sus4": [0, 5, 7, 10],
	"7sus2": [0, 2, 7, 10],
	"7sus": [0, 5, 7, 10],

	# Sixths
	"6": [0, 4, 7, 9],
	"maj6": [0, 4, 7, 9],
	"m6": [0, 3, 7, 9],
	"min6": [0, 3, 7, 9],
	"6/9": [0, 4, 7, 9, 14],
	"m6/9": [0, 3, 7, 9, 14],

	# Extended
	"9": [0, 4, 7, 10, 14],
	"dom9": [0, 4, 7, 10, 14],
	"maj9": [0, 4, 7, 11, 14],
	"M9": [0, 4, 7, 11, 14],
	"min9": [0, 3, 7, 10, 14],
	"m9": [0, 3, 7, 10, 14],
	"mM9": [0, 3, 7, 11, 14],
	"9sus4": [0, 5, 7, 10, 14],
	"9sus": [0, 5, 7, 10, 14],
	"11": [0, 4, 7, 10, 14, 17],
	"dom11": [0, 4, 7, 10, 14, 17],
	"maj11": [0, 4, 7, 11, 14, 17],
	"M11": [0, 4, 7, 11, 14, 17],
	"min11": [0, 3, 7, 10, 14, 17],
	"m11": [0, 3, 7, 10, 14, 17],
	"11sus": [0, 5, 7, 10, 14, 17],
	"13": [0, 4, 7, 10, 14, 17, 21],
	"dom13": [0, 4, 7, 10, 14, 17, 21],
	"maj13": [0, 4, 7, 11, 14, 17, 21],
	"M13": [0, 4, 7, 11, 14, 17, 21],
	"min13": [0, 3, 7, 10, 14, 17, 21],
	"m13": [0, 3, 7, 10, 14, 17, 21],
	"13sus4": [0, 5, 7, 10, 14, 17, 21],
	"13sus": [0, 5, 7, 10, 14, 17, 21],

	# Added tones
	"add2": [0, 2, 4, 7],
	"add9": [0, 4, 7, 14],
	"add4": [0, 4, 5, 7],
	"add11": [0, 4, 7, 17],
	"add13": [0, 4, 7, 21],
	"madd2": [0, 2, 3, 7],
	"madd9": [0, 3, 7, 14],
	"madd4": [0, 3, 5, 7],
	"madd11": [0, 3, 7, 17],
	"7add11": [0, 4, 7, 10, 17],
	"7add13": [0, 4, 7, 10, 21],
	"maj7add11": [0, 4, 7, 11, 17],
	"maj7add13": [0, 4, 7, 11, 21],
	"m7add11": [0, 3, 7, 10, 17],
	"m7add13": [0, 3, 7, 10, 21],

	# Lydian
	"7#11": [0, 4, 7, 10, 18],
	"lyd7": [0, 4, 7, 10, 18],
	"maj7#11": [0, 4, 7, 11, 18],
	"lydmaj7": [0, 4, 7, 11, 18],
	"9#11": [0, 4, 7, 10, 14, 18],
	"maj9#11": [0, 4, 7, 11, 14, 18],
	"13#11": [0, 4, 7, 10, 14, 18, 21],

	# Altered dominants
	"7b5": [0, 4, 6, 10],
	"7#5": [0, 4, 8, 10],
	"7b9": [0, 4, 7, 10, 13],
	"7#9": [0, 4, 7, 10, 15],
	"7b13": [0, 4, 7, 10, 20],
	"7b5b9": [0, 4, 6, 10, 13],
	"7b5#9": [0, 4, 6, 10, 15],
	"7#5b9": [0, 4, 8, 10, 13],
	"7#5#9": [0, 4, 8, 10, 15],
	"7b9b13": [0, 4, 7, 10, 13, 20],
	"7#9b13": [0, 4, 7, 10, 15, 20],
	"7b9#11": [0, 4, 7, 10, 13, 18],
	"7#9#11": [0, 4, 7, 10, 15, 18],
	"7alt": [0, 4, 6, 10, 13, 15],
	"alt": [0, 4, 6, 10, 13, 15],
	"9b5": [0, 4, 6, 10, 14],
	"9#5": [0, 4, 8, 10, 14],
	"13b9": [0, 4, 7, 10, 13, 17, 21],
	"13#9": [0, 4, 7, 10, 15, 17, 21],
	"13b5": [0, 4, 6, 10, 14, 17, 21],
	"13#5": [0, 4, 8, 10, 14, 17, 21],

	# Quartal, quintal and colour chords
	"quartal": [0, 5, 10],
	"quartal4": [0, 5, 10, 15],
	"quintal": [0, 7, 14],
	"quintal4": [0, 7, 14, 21],
	"so_what": [0, 5, 10, 15, 19],
	"cluster3": [0, 1, 2],
	"cluster4": [0, 1, 2, 3],
	"mu": [0, 2, 4, 7],
	"majover": [0, 4, 7, 12, 16, 19],
	"bond": [0, 4, 8, 11, 14],
	"phryg": [0, 1, 5, 7],

	# Power and shell
	"5": [0, 7],
	"power": [0, 7],
	"power8": [0, 7, 12],
	"octave": [0, 12],
	"unison": [0],
	"shell7": [0, 4, 10],
	"shellM7": [0, 4, 11],
	"shellm7": [0, 3, 10],
}


VOICINGS: typing.Dict[str, typing.Dict[str, typing.List[int]]] = {
	"": {"close": [0, 4, 7], "open": [-12, 0, 7, 16]},
	"maj": {"close": [0, 4, 7], "open": [-12, 0, 7, 16]},
	"m": {"close": [0, 3, 7], "open": [-12, 0, 7, 15]},
	"maj7": {
		"close": [0, 4, 7, 11],
		"drop2": [0, 7, 11, 16],
		"drop3": [0, 11, 16, 19],
		"drop24": [0, 7, 16, 23],
		"shell": [0, 11, 16],
		"open": [-12, 0, 7, 11],
		"spread": [0, 11, 16, 23],
		"quartal": [0, 5, 10, 16],
		"rootless_a": [4, 7, 11, 14],
		"rootless_b": [11, 14, 16, 19],
	},
	"M7": {"close": [0, 4, 7, 11], "drop2": [0, 7, 11, 16], "shell": [0, 11, 16]},
	"m7": {
		"close": [0, 3, 7, 10],
		"drop2": [0, 7, 10, 15],
		"drop3": [0, 10, 15, 19],
		"drop24": [0, 7, 15, 22],
		"shell": [0, 10, 15],
		"open": [-12, 0, 7, 15],
		"rootless_a": [3, 7, 10, 14],
		"rootless_b": [10, 14, 15, 19],
		"quartal": [0, 5, 10, 15],
		"so_what": [0, 5, 10, 15, 19],
	},
	"min7": {"close": [0, 3, 7, 10], "drop2": [0, 7, 10, 15], "shell": [0, 10, 15]},
	"7": {
		"close": [0, 4, 7, 10],
		"drop2": [0, 7, 10, 16],
		"drop3": [0, 10, 16, 19],
		"drop24": [0, 7, 16, 22],
		"shell": [0, 10, 16],
		"open": [-12, 0, 7, 16],
		"rootless_a": [4, 7, 10, 14],
		"rootless_b": [10, 14, 16, 19],
		"tritone_sub": [6, 10, 13, 16],
		"freddie": [0, 10, 16],
	},
	"dom7": {"close": [0, 4, 7, 10], "drop2": [0, 7, 10, 16], "shell": [0, 10, 16]},
	"9": {
		"close": [0, 4, 7, 10, 14],
		"drop2": [0, 7, 10, 14, 16],
		"shell": [0, 10, 14, 16],
		"open": [-12, 0, 10, 14, 16],
		"rootless_a": [4, 10, 14, 19],
		"rootless_b": [10, 14, 16, 21],
		"spread": [0, 10, 16, 26],
	},
	"dom9": {"close": [0, 4, 7, 10, 14], "shell": [0, 10, 14, 16]},
	"maj9": {
		"close": [0, 4, 7, 11, 14],
		"drop2": [0, 7, 11, 14, 16],
		"shell": [0, 11, 14, 16],
		"open": [-12, 0, 11, 16, 26],
		"rootless": [4, 11, 14, 19],
	},
	"M9": {"close": [0, 4, 7, 11, 14], "shell": [0, 11, 14, 16]},
	"m9": {
		"close": [0, 3, 7, 10, 14],
		"drop2": [0, 7, 10, 14, 15],
		"shell": [0, 10, 14, 15],
		"open": [-12, 0, 10, 14, 15],
		"rootless_a": [3, 10, 14, 19],
		"rootless_b": [10, 14, 15, 21],
		"so_what": [0, 5, 10, 14, 19],
	},
	"min9": {"close": [0, 3, 7, 10, 14], "shell": [0, 10, 14, 15]},
	"dim7": {"close": [0, 3, 6, 9], "drop2": [0, 6, 9, 15], "spread": [0, 6, 15, 21]},
	"m7b5": {
		"close": [0, 3, 6, 10],
		"drop2": [0, 6, 10, 15],
		"shell": [0, 10, 15],
		"rootless": [3, 6, 10, 14],
	},
	"7sus4": {
		"close": [0, 5, 7, 10],
		"drop2": [0, 7, 10, 17],
		"shell": [0, 10, 17],
		"quartal": [0, 5, 10, 17],
	},
	"9sus4": {"close": [0, 5, 7, 10, 14], "quartal": [0, 5, 10, 14, 19]},
	"13": {
		"close": [0, 4, 7, 10, 14, 21],
		"shell": [0, 10, 16, 21],
		"rootless": [4, 10, 14, 21],
		"gospel": [0, 4, 10, 14, 21],
	},
	"7alt": {"close": [0, 4, 6, 10, 13], "open": [0, 10, 13, 18], "rootless": [4, 6, 10, 13]},
	"7#9": {"close": [0, 4, 7, 10, 15], "drop2": [0, 7, 10, 15, 16], "shell": [0, 10, 15, 16]},
	"7b9": {"close": [0, 4, 7, 10, 13], "rootless": [4, 7, 10, 13]},
	"add9": {"close": [0, 4, 7, 14], "spread": [0, 7, 14, 16]},
	"6": {"close": [0, 4, 7, 9], "drop2": [0, 7, 9, 16]},
	"m6": {"close": [0, 3, 7, 9], "drop2": [0, 7, 9, 15]},
}

# Chord degree -> semitones above the root, for building altered qualities.
ALTERATION_DEGREES: typing.Dict[int, int] = {5: 7, 9: 14, 11: 17, 13: 21}

MAJOR_QUALITIES = ["maj", "min", "min", "maj", "maj", "min", "dim"]
MAJOR_SEVENTH_QUALITIES = ["maj7", "m7", "m7", "maj7", "7", "m7", "m7b5"]
MINOR_QUALITIES = ["min", "dim", "maj", "min", "min", "maj", "maj"]
MINOR_SEVENTH_QUALITIES = ["m7", "m7b5", "maj7", "m7", "m7", "maj7", "7"]

PROGRESSIONS: typing.Dict[str, typing.List[int]] = {
	"I-IV-V": [1, 4, 5],
	"I-V-vi-IV": [1, 5, 6, 4],
	"I-vi-IV-V": [1, 6, 4, 5],
	"I-IV-vi-V": [1, 4, 6, 5],
	"vi-IV-I-V": [6, 4, 1, 5],
	"I-IV-I-V": [1, 4, 1, 5],
	"12-bar-blues": [1, 1, 1, 1, 4, 4, 1, 1, 5, 4, 1, 5],
	"8-bar-blues": [1, 1, 4, 4, 5, 4, 1, 5],
	"minor-blues": [1, 1, 1, 1, 4, 4, 1, 1, 6, 5, 1, 5],
	"ii-V-I": [2, 5, 1],
	"ii-V": [2, 5],
	"I-vi-ii-V": [1, 6, 2, 5],
	"iii-vi-ii-V": [3, 6, 2, 5],
	"circle-of-fourths": [1, 4, 7, 3, 6, 2, 5, 1],
	"circle-of-fifths": [1, 5, 2, 6, 3, 7, 4, 1],
	"gospel-vamp": [1, 4, 1, 5],
	"gospel-turnaround": [1, 6, 2, 5],
	"dorian-vamp": [1, 4],
	"mixolydian-vamp": [1, 7],
}

# Progressions with fixed colours, as (semitones above the key root, quality).
JAZZ_PROGRESSIONS: typing.Dict[str, typing.List[typing.Tuple[int, str]]] = {
	"ii-V-I-7": [(2, "m7"), (7, "7"), (0, "maj7")],
	"ii-V-i": [(2, "m7b5"), (7, "7b9"), (0, "m7")],
	"rhythm-a": [(0, "maj7"), (9, "m7"), (2, "m7"), (7, "7")],
	"autumn-leaves": [(5, "m7"), (10, "7"), (3, "maj7"), (8, "maj7"), (2, "m7b5"), (7, "7"), (0, "m7")],
	"neo-soul": [(0, "maj9"), (2, "m9"), (7, "13"), (9, "m9")],
	"gospel-extended": [(0, "maj9"), (5, "maj9"), (9, "m9"), (7, "13sus4")],
	"backdoor": [(5, "m7"), (10, "7"), (0, "maj7")],
	"tritone-sub": [(2, "m7"), (1, "7"), (0, "maj7")],
	"lady-bird": [(0, "maj7"), (10, "7"), (8, "maj7"), (7, "7")],
}

_CHORD_PATTERN = re.compile(
	r"^(?P<root>[A-G][#b]?)"
	r"(?P<quality>(?:6/9|[A-Za-z0-9#+_])*)"
	r"(?:@(?P<voicing>\w+))?"
	r"(?:/(?P<bass>[A-G][#b]?))?"
	r":(?P<code>\d+|[whq])(?P<dot>\.?)(?P<articulation>[*~>^]?)$"
)

_ALTERATION_PATTERN = re.compile(r"([b#])(5|9|11|13)")


def invert_chord (intervals: typing.List[int], inversion: int) -> typing.List[int]:

	"""Rotate chord intervals to produce an inversion.

	Inversion 0 is root position. Inversion 1 raises the bottom note by an
	octave (first inversion). Wraps around for inversions >= the number of
	notes.

	Example:
		```python
		invert_chord([0, 4, 7], 1)  # [4, 7, 12]
		```
	"""

	if not intervals:
		return []

	n = len(intervals)
	inversion = inversion % n
	result = list(intervals)

	for _ in range(inversion):
		result = result[1:] + [result[0] + 12]

	return result


def chord_intervals (quality: str) -> typing.List[int]:

	"""
	Return the intervals for a quality symbol.

	Qualities not found directly are split into a known base quality and
	trailing alterations; each alteration raises or lowers the matching
	degree, adding it when the base chord lacks that degree.

	Raises:
		ChordParseError: If neither the quality nor its base is known.

	Example:
		```python
		chord_intervals("m7")     # [0, 3, 7, 10]
		chord_intervals("m9b5")   # [0, 3, 6, 10, 14]
		```
	"""

	if quality in CHORD_INTERVALS:
		return list(CHORD_INTERVALS[quality])

	alterations = _ALTERATION_PATTERN.findall(quality)
	base = _ALTERATION_PATTERN.sub("", quality)

	if not alterations or base not in CHORD_INTERVALS:
		raise ChordParseError(f"Unknown chord quality: {quality!r}")

	result = list(CHORD_INTERVALS[base])

	for accidental, degree in alterations:
		natural = ALTERATION_DEGREES[int(degree)]
		altered = natural + (1 if accidental == "#" else -1)

		if natural in result:
			result[result.index(natural)] = altered
		else:
			result.append(altered)

	return sorted(result)


@dataclasses.dataclass(frozen=True)
class Chord:

	"""
	Represents a chord as a root pitch class and quality symbol.
	"""

	root_pc: int
	quality: str


	def intervals (self) -> typing.List[int]:

		"""
		Return the chord intervals for this chord quality.
		"""

		return chord_intervals(self.quality)


	def tones (self, root: int, inversion: int = 0) -> typing.List[int]:

		"""Return MIDI note numbers for chord tones around a reference note.

		Finds the MIDI note for the chord's root pitch class closest to
		``root`` and stacks the intervals on top of it.

		Example:
			```python
			Chord(root_pc=0, quality="maj").tones(62)   # [60, 64, 67]
			```
		"""

		offset = (self.root_pc - root) % 12
		if offset > 6:
			offset -= 12

		effective_root = root + offset

		intervals = self.intervals()

		if inversion != 0:
			intervals = invert_chord(intervals, inversion)

		return [effective_root + interval for interval in intervals]


	def pitch_classes (self) -> typing.List[int]:

		"""Pitch classes in chord order, duplicates removed."""

		result: typing.List[int] = []

		for interval in self.intervals():
			pc = (self.root_pc + interval) % 12
			if pc not in result:
				result.append(pc)

		return result


	def name (self) -> str:

		"""
		Return a human-friendly chord name.
		"""

		return f"{PC_TO_NOTE_NAME[self.root_pc % 12]}{self.quality}"


@dataclasses.dataclass
class ParsedChord:

	"""
	A parsed chord token.

	``notes`` holds pitch names from the lowest voice upward (slash bass
	first). A chord rest has an empty ``notes`` list and ``root`` of ``None``.
	"""

	root: typing.Optional[str]
	quality: str
	notes: typing.List[str]
	duration: float
	duration_code: str = "q"
	dotted: bool = False
	articulation: str = ""
	voicing: typing.Optional[str] = None
	bass: typing.Optional[str] = None

	@property
	def is_rest (self) -> bool:

		return not self.notes


	@property
	def gate (self) -> float:

		return etherdaw.constants.velocity.ARTICULATIONS[self.articulation][0]


	@property
	def velocity_boost (self) -> float:

		return etherdaw.constants.velocity.ARTICULATIONS[self.articulation][1]


def _voicing_intervals (
	quality: str,
	voicing: str,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics]
) -> typing.List[int]:

	voicings = VOICINGS.get(quality, {})

	if voicing in voicings:
		return list(voicings[voicing])

	if diagnostics is not None:
		diagnostics.warn(f'Voicing "{voicing}" not found for quality "{quality or "maj"}", using standard voicing')

	return chord_intervals(quality)


def parse_chord (
	token: str,
	octave: int = etherdaw.constants.DEFAULT_CHORD_OCTAVE,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> ParsedChord:

	"""
	Parse one chord token into concrete pitches.

	Parameters:
		token: Chord token, e.g. ``"Am7@drop2/G:h."``, or a rest ``"r:q"``.
		octave: Octave of the root (default 3). A slash bass sits one
			octave lower.
		diagnostics: Receives a warning when a voicing is unknown for the
			quality; the close voicing is used instead.

	Returns:
		A ``ParsedChord``.

	Raises:
		ChordParseError: Malformed token or unrecognised quality.

	Example:
		```python
		parse_chord("Cmaj7:w").notes   # ["C3", "E3", "G3", "B3"]
		parse_chord("C/G:h").notes     # ["G2", "C3", "E3", "G3"]
		```
	"""

	text = token.strip()

	if etherdaw.notation.is_rest(text):
		try:
			rest = etherdaw.notation.parse_token(text)
		except etherdaw.notation.NoteParseError as exc:
			raise ChordParseError(str(exc)) from exc
		return ParsedChord(
			root = None,
			quality = "",
			notes = [],
			duration = rest.duration,
			duration_code = rest.duration_code,
			dotted = rest.dotted,
		)

	match = _CHORD_PATTERN.match(text)

	if not match:
		raise ChordParseError(f"Invalid chord token: {token!r}. Expected e.g. 'Cmaj7:w', 'Am9@drop2:h'")

	root = match.group("root")
	quality = match.group("quality")
	voicing = match.group("voicing")
	bass = match.group("bass")
	dotted = match.group("dot") == "."

	try:
		duration = etherdaw.notation.parse_duration(match.group("code"), dotted)
	except etherdaw.notation.NoteParseError as exc:
		raise ChordParseError(f"{exc} in {token!r}") from exc

	if voicing:
		intervals = _voicing_intervals(quality, voicing, diagnostics)
	else:
		intervals = chord_intervals(quality)

	root_midi = etherdaw.notation.pitch_to_midi(f"{root}{octave}")
	notes = [etherdaw.notation.midi_to_pitch(root_midi + interval) for interval in intervals]

	if bass:
		bass_midi = etherdaw.notation.pitch_to_midi(f"{bass}{octave - 1}")
		notes.insert(0, etherdaw.notation.midi_to_pitch(bass_midi))

	return ParsedChord(
		root = root,
		quality = quality or "maj",
		notes = notes,
		duration = duration,
		duration_code = match.group("code"),
		dotted = dotted,
		articulation = match.group("articulation"),
		voicing = voicing,
		bass = bass,
	)


def get_chord_notes (
	symbol: str,
	octave: int = etherdaw.constants.DEFAULT_CHORD_OCTAVE,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> typing.List[str]:

	"""Return the pitch names of a bare chord symbol (``"Dm7"``, ``"Am9@drop2"``)."""

	return parse_chord(f"{symbol}:q", octave, diagnostics).notes


def diatonic_chord (key: str, degree: int, seventh: bool = False) -> str:

	"""
	Return the chord symbol built on a scale degree of a key.

	Minor keys use natural-minor qualities; every other mode uses the
	major-key qualities.

	Example:
		```python
		diatonic_chord("C major", 2)        # "Dmin"
		diatonic_chord("C major", 5, True)  # "G7"
		```
	"""

	import etherdaw.intervals

	root_pc, mode = etherdaw.intervals.parse_key(key)

	if mode == "minor":
		qualities = MINOR_SEVENTH_QUALITIES if seventh else MINOR_QUALITIES
	else:
		qualities = MAJOR_SEVENTH_QUALITIES if seventh else MAJOR_QUALITIES

	index = (degree - 1) % 7
	scale = etherdaw.intervals.get_scale_intervals("minor" if mode == "minor" else "major")
	chord_pc = (root_pc + scale[index]) % 12

	return f"{PC_TO_NOTE_NAME[chord_pc]}{qualities[index]}"


def get_progression (name: str, key: str) -> typing.List[str]:

	"""
	Return the chord symbols of a named progression in a key.

	Raises:
		ValueError: Unknown progression name.
	"""

	if name in PROGRESSIONS:
		return [diatonic_chord(key, degree) for degree in PROGRESSIONS[name]]

	if name in JAZZ_PROGRESSIONS:

		import etherdaw.intervals

		root_pc, _ = etherdaw.intervals.parse_key(key)
		return [f"{PC_TO_NOTE_NAME[(root_pc + offset) % 12]}{quality}" for offset, quality in JAZZ_PROGRESSIONS[name]]

	raise ValueError(f"Unknown progression: {name!r}. Available: {sorted(list(PROGRESSIONS) + list(JAZZ_PROGRESSIONS))}")
