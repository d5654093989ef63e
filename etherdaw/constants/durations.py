"""Beat-based duration constants and the duration-code table.

All values are in **beats**, where 1.0 = one quarter note. Note tokens name
their length with a short code (``"q"``, ``"8"``, ``"h"``); ``DURATION_CODES``
maps each code to its beat value::

    import etherdaw.constants.durations as dur

    dur.DURATION_CODES["8"]      # 0.5
    dur.DOTTED_QUARTER           # 1.5

    # "4 bars of quarter notes"
    length = 16 * dur.QUARTER
"""

import typing


THIRTYSECOND = 0.125
SIXTEENTH = 0.25
DOTTED_SIXTEENTH = 0.375
TRIPLET_EIGHTH = 1 / 3
EIGHTH = 0.5
DOTTED_EIGHTH = 0.75
TRIPLET_QUARTER = 2 / 3
QUARTER = 1.0
DOTTED_QUARTER = 1.5
HALF = 2.0
DOTTED_HALF = 3.0
WHOLE = 4.0

DOT_MULTIPLIER = 1.5

DURATION_CODES: typing.Dict[str, float] = {
	"w": WHOLE,
	"h": HALF,
	"q": QUARTER,
	"2": HALF,
	"4": QUARTER,
	"8": EIGHTH,
	"16": SIXTEENTH,
	"32": THIRTYSECOND,
}

# Codes considered when snapping an arbitrary beat length back to notation.
STANDARD_CODES: typing.List[str] = ["w", "h", "q", "8", "16", "32"]

MIN_TUPLET_RATIO = 2
MAX_TUPLET_RATIO = 9


def tuplet_base (ratio: int) -> int:

	"""Return how many regular notes a tuplet of ``ratio`` notes replaces.

	Even ratios replace half as many notes (a sextuplet fills the space of
	three), odd ratios replace the next power-friendly count below them (a
	triplet fills the space of two, a quintuplet the space of three).
	"""

	if ratio % 2 == 0:
		return ratio // 2

	return ratio // 2 + 1


def nearest_code (beats: float) -> typing.Tuple[str, bool]:

	"""Return the (code, dotted) pair whose length is closest to ``beats``.

	Exact matches win; otherwise the plain and dotted variants of every
	standard code compete on absolute difference, plain codes first on a tie.

	Example:
		```python
		nearest_code(1.5)   # ("q", True)
		nearest_code(0.9)   # ("q", False)
		```
	"""

	candidates: typing.List[typing.Tuple[str, bool, float]] = []

	for code in STANDARD_CODES:
		candidates.append((code, False, DURATION_CODES[code]))

	for code in STANDARD_CODES:
		candidates.append((code, True, DURATION_CODES[code] * DOT_MULTIPLIER))

	for code, dotted, value in candidates:
		if abs(value - beats) < 1e-9:
			return code, dotted

	best = min(candidates, key=lambda candidate: abs(candidate[2] - beats))

	return best[0], best[1]
