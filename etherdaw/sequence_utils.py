"""Rhythm sequence generators and small sequence helpers.

Euclidean rhythms spread ``hits`` onsets as evenly as possible over ``steps``
positions using Bjorklund's algorithm. The same arguments always give the
same rhythm. Rotation shifts the result circularly; positive values rotate
to the right.

Example:
	```python
	euclidean(3, 8)                 # tresillo: [T, F, F, T, F, F, T, F]
	generate_euclidean(3, 8, 1)     # [F, T, F, F, T, F, F, T]
	preset("four-on-floor")         # (4, 16)
	```
"""

import random
import typing

T = typing.TypeVar("T")


# Traditional and electronic rhythms as (hits, steps).
EUCLIDEAN_PRESETS: typing.Dict[str, typing.Tuple[int, int]] = {
	"tresillo": (3, 8),
	"cinquillo": (5, 8),
	"son_clave": (5, 8),
	"fume_fume": (5, 12),
	"bembe": (7, 12),
	"bossa": (5, 16),
	"aksak": (9, 16),
	"gahu": (7, 16),
	"rumba_clave": (5, 16),
	"soukous": (7, 12),
	"four_on_floor": (4, 16),
	"offbeat": (4, 16),
}


def euclidean (hits: int, steps: int) -> typing.List[bool]:

	"""
	Generate a Euclidean rhythm using Bjorklund's algorithm.

	Groups that start with a hit are repeatedly paired with groups that
	start with a rest until one kind has at most one group left; the groups
	are then flattened in order.

	Raises:
		ValueError: For negative hits or a non-positive step count.
	"""

	if steps <= 0:
		raise ValueError(f"Steps must be positive, got {steps}")

	if hits < 0:
		raise ValueError(f"Hits cannot be negative, got {hits}")

	if hits == 0:
		return [False] * steps

	if hits >= steps:
		return [True] * steps

	groups: typing.List[typing.List[int]] = [[1] for _ in range(hits)] + [[0] for _ in range(steps - hits)]

	while True:

		ones = sum(1 for group in groups if group[0] == 1)
		zeros = len(groups) - ones

		if ones <= 1 or zeros <= 1:
			break

		paired: typing.List[typing.List[int]] = []

		for _ in range(min(ones, zeros)):
			one_index = next(i for i, group in enumerate(groups) if group[0] == 1)
			zero_index = next(i for i, group in enumerate(groups) if group[0] == 0)
			paired.append(groups[one_index] + groups[zero_index])

			for index in sorted((one_index, zero_index), reverse=True):
				del groups[index]

		groups = paired + groups

	return [value == 1 for group in groups for value in group]


def rotate (pattern: typing.Sequence[T], rotation: int) -> typing.List[T]:

	"""Rotate a pattern circularly; positive rotation moves steps to the right."""

	n = len(pattern)

	if n == 0:
		return []

	r = rotation % n

	return list(pattern[n - r:]) + list(pattern[:n - r])


def generate_euclidean (hits: int, steps: int, rotation: int = 0) -> typing.List[bool]:

	"""Euclidean rhythm followed by a rotation."""

	return rotate(euclidean(hits, steps), rotation)


def pattern_to_steps (pattern: typing.Sequence[bool]) -> typing.List[int]:

	"""Return the indices of the hits in a boolean pattern."""

	return [i for i, hit in enumerate(pattern) if hit]


def roll (indices: typing.List[int], shift: int, length: int) -> typing.List[int]:

	"""Shift step indices circularly within a sequence of ``length`` steps."""

	return sorted((index + shift) % length for index in indices)


def preset (name: str) -> typing.Tuple[int, int]:

	"""
	Look up a named Euclidean rhythm as ``(hits, steps)``.

	Names are matched case-insensitively with spaces and dashes treated as
	underscores.

	Raises:
		ValueError: Unknown preset name.
	"""

	key = name.lower().replace(" ", "_").replace("-", "_")

	if key not in EUCLIDEAN_PRESETS:
		raise ValueError(f"Unknown Euclidean preset: {name!r}. Available: {', '.join(EUCLIDEAN_PRESETS)}")

	return EUCLIDEAN_PRESETS[key]


def weighted_choice (options: typing.Sequence[typing.Tuple[T, float]], rng: random.Random) -> T:

	"""Pick one item from a list of (value, weight) pairs.

	Weights are relative - they don't need to sum to 1.0. Zero-weight
	options are never chosen.

	Parameters:
		options: List of `(value, weight)` tuples
		rng: Random number generator instance

	Example:
		```python
		weighted_choice([("1", 0.6), ("5", 0.3), ("rest", 0.1)], rng)
		```
	"""

	if not options:
		raise ValueError("Options list cannot be empty")

	total = sum(weight for _, weight in options)

	if total <= 0:
		raise ValueError("Total weight must be positive")

	threshold = rng.random() * total
	cumulative = 0.0

	for value, weight in options:
		cumulative += weight
		if weight > 0 and cumulative > threshold:
			return value

	return next(value for value, weight in reversed(options) if weight > 0)
