import logging
import math
import typing

import etherdaw.diagnostics
import etherdaw.notation
import etherdaw.transforms


logger = logging.getLogger(__name__)

TECHNIQUES = ("ascending_sequence", "descending_sequence", "extension", "fragmentation", "development")


def sequence (motif: typing.Sequence[str], repetitions: int, interval: int) -> typing.List[str]:

	"""Repeat ``motif`` ``repetitions`` times, each copy ``interval`` semitones further."""

	return etherdaw.transforms.create_sequence(motif, [i * interval for i in range(repetitions)])


def intervals (tokens: typing.Sequence[str]) -> typing.List[int]:

	"""Semitone steps between adjacent pitched notes. Steps touching a rest are skipped."""

	steps = []

	for previous, current in zip(tokens, tokens[1:]):
		if etherdaw.notation.is_rest(previous) or etherdaw.notation.is_rest(current):
			continue
		steps.append(etherdaw.notation.parse_token(current).midi - etherdaw.notation.parse_token(previous).midi)

	return steps


def extension (tokens: typing.Sequence[str], count: int) -> typing.List[str]:

	"""
	Append ``count`` notes that keep moving by the motif's own intervals.

	The intervals are replayed backwards from the last one, each new note
	copying the rhythm of the previous last note.
	"""

	steps = intervals(tokens)

	if len(tokens) < 2 or not steps:
		return list(tokens)

	result = list(tokens)
	last = tokens[-1]

	for i in range(count):
		last = etherdaw.transforms.transpose([last], steps[len(steps) - 1 - (i % len(steps))])[0]
		result.append(last)

	return result


def fragmentation (tokens: typing.Sequence[str], repetitions: int) -> typing.List[str]:

	"""
	Play shrinking fragments of the motif, alternating head and tail.

	Each fragment is 70% of the previous one's length (at least one note)
	and rises by a whole tone per repetition.
	"""

	result: typing.List[str] = []
	size = len(tokens)

	for i in range(repetitions):
		size = max(1, math.floor(size * 0.7))

		if i % 2 == 0:
			fragment = etherdaw.transforms.extract_head(tokens, size)
		else:
			fragment = etherdaw.transforms.extract_tail(tokens, size)

		result.extend(etherdaw.transforms.transpose(fragment, i * 2))

	return result


def development (tokens: typing.Sequence[str], steps: int, interval: int) -> typing.List[str]:

	"""The motif, one sequential repeat at ``interval``, then fragments for the remaining steps."""

	result = list(tokens)
	result.extend(sequence(tokens, 2, interval)[len(tokens):])

	if steps > 2:
		result.extend(fragmentation(tokens, steps - 2))

	return result


def continue_motif (
	tokens: typing.Sequence[str],
	technique: str,
	steps: int = 3,
	interval: int = -2,
	diagnostics: typing.Optional[etherdaw.diagnostics.Diagnostics] = None
) -> typing.List[str]:

	"""
	Extend a motif with a named development technique.

	Parameters:
		tokens: The source motif as note tokens.
		technique: One of ``TECHNIQUES``.
		steps: Repetitions for sequences and fragments, or added notes for
			``extension``.
		interval: Semitones per sequence step. Ascending and descending
			sequences use its magnitude with their own direction.
		diagnostics: Collector for empty sources and unknown techniques.

	Returns:
		The continued line. Unknown techniques return the source unchanged.

	Example:
		```python
		continue_motif(["C4:8", "D4:8", "E4:q"], "descending_sequence", steps=3, interval=2)
		# C4 D4 E4, A#3 C4 D4, G#3 A#3 C4
		```
	"""

	if not tokens:
		if diagnostics is not None:
			diagnostics.warn("Continuation source has no notes")
		return []

	logger.debug(f"Continuation {technique} over {len(tokens)} notes, steps={steps}, interval={interval}")

	if technique == "ascending_sequence":
		return sequence(tokens, steps, abs(interval))

	if technique == "descending_sequence":
		return sequence(tokens, steps, -abs(interval))

	if technique == "extension":
		return extension(tokens, steps)

	if technique == "fragmentation":
		return fragmentation(tokens, steps)

	if technique == "development":
		return development(tokens, steps, interval)

	if diagnostics is not None:
		diagnostics.warn(f"Unknown continuation technique: {technique}")

	return list(tokens)


def validate (source: str, technique: str, steps: int) -> typing.List[str]:

	problems = []

	if not source:
		problems.append("Continuation must specify a source pattern")

	if technique not in TECHNIQUES:
		problems.append(f"Unknown continuation technique: {technique}. Valid: {', '.join(TECHNIQUES)}")

	if steps < 1:
		problems.append("Continuation steps must be at least 1")

	return problems
