import dataclasses
import typing

import etherdaw.pattern


def swing_beat (beat: float, amount: float, division: float = 0.5) -> float:

	"""
	Delay a beat position if it falls on an off-beat subdivision.

	Positions are grouped into ``division``-sized slots within each beat;
	notes in odd slots move later by up to a third of a division, which at
	``amount=1.0`` gives a triplet feel.
	"""

	if amount == 0:
		return beat

	slot = int((beat % 1) // division)

	if slot % 2 == 1:
		return beat + (division / 3.0) * amount

	return beat


def apply_swing (
	notes: typing.Iterable[etherdaw.pattern.Note],
	amount: float,
	division: float = 0.5
) -> typing.List[etherdaw.pattern.Note]:

	"""
	Apply swing timing to a list of beat-positioned notes.
	"""

	if not 0.0 <= amount <= 1.0:
		raise ValueError("Swing amount must be between 0.0 and 1.0")

	if division <= 0:
		raise ValueError("Swing division must be positive")

	return [dataclasses.replace(note, start=swing_beat(note.start, amount, division)) for note in notes]
