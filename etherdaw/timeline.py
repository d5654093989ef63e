"""Timeline events and the two-pass timeline builder.

The builder is an append-only log: ``add_note``, ``add_chord``,
``add_tempo_change`` and ``add_key_change`` record events at beat
positions. ``build`` hands the log to ``finalize``, which sorts it by beat
and converts beats to seconds in one walk. Each tempo change is crossed
using the tempo before it, so every later event is re-based correctly no
matter how many changes come first.
"""

import dataclasses
import logging
import typing

import etherdaw.notation
import etherdaw.pattern
import etherdaw.score


logger = logging.getLogger(__name__)

_CAMEL_CASE = {
	"timing_offset": "timingOffset",
}


@dataclasses.dataclass
class NoteEvent:

	"""
	One note. ``time`` and ``duration`` are beats; the ``*_seconds`` fields
	are filled in when the timeline is built.
	"""

	time: float
	pitch: str
	duration: float
	velocity: float
	instrument: str
	expression: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
	time_seconds: float = 0.0
	duration_seconds: float = 0.0

	type: typing.ClassVar[str] = "note"

	@property
	def end_seconds (self) -> float:

		return self.time_seconds + self.duration_seconds


	def as_dict (self) -> typing.Dict[str, typing.Any]:

		data = {
			"type": self.type,
			"time": self.time,
			"timeSeconds": self.time_seconds,
			"pitch": self.pitch,
			"duration": self.duration,
			"durationSeconds": self.duration_seconds,
			"velocity": self.velocity,
			"instrument": self.instrument,
		}

		for name, value in self.expression.items():
			data[_CAMEL_CASE.get(name, name)] = value

		return data


@dataclasses.dataclass
class ChordEvent:

	"""Simultaneous notes that share a start."""

	time: float
	notes: typing.List[NoteEvent]
	time_seconds: float = 0.0

	type: typing.ClassVar[str] = "chord"

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"type": self.type,
			"time": self.time,
			"timeSeconds": self.time_seconds,
			"notes": [note.as_dict() for note in self.notes],
		}


@dataclasses.dataclass
class TempoEvent:

	time: float
	tempo: float
	time_seconds: float = 0.0

	type: typing.ClassVar[str] = "tempo"

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {"type": self.type, "time": self.time, "timeSeconds": self.time_seconds, "tempo": self.tempo}


@dataclasses.dataclass
class KeyEvent:

	time: float
	key: str
	time_seconds: float = 0.0

	type: typing.ClassVar[str] = "key"

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {"type": self.type, "time": self.time, "timeSeconds": self.time_seconds, "key": self.key}


Event = typing.Union[NoteEvent, ChordEvent, TempoEvent, KeyEvent]


@dataclasses.dataclass
class Timeline:

	"""
	A built timeline.

	Attributes:
		events: All events in ascending beat order.
		total_beats: End of the last note, in beats.
		total_seconds: End of the last note, in seconds.
		instruments: Instrument names in the order they were first used.
		settings: The settings compilation started from.
	"""

	events: typing.List[Event]
	total_beats: float
	total_seconds: float
	instruments: typing.List[str]
	settings: etherdaw.score.Settings

	def notes (self) -> typing.List[NoteEvent]:

		"""Every note, chord members included, ordered by start."""

		result: typing.List[NoteEvent] = []

		for event in self.events:
			if isinstance(event, NoteEvent):
				result.append(event)
			elif isinstance(event, ChordEvent):
				result.extend(event.notes)

		result.sort(key=lambda note: note.time)

		return result


	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"events": [event.as_dict() for event in self.events],
			"totalBeats": self.total_beats,
			"totalSeconds": self.total_seconds,
			"instruments": list(self.instruments),
			"settings": self.settings.as_dict(),
		}


class TimelineBuilder:

	"""
	Collect events at beat positions, then build a ``Timeline``.

	Example:
		```python
		builder = TimelineBuilder(Settings(tempo=120))
		builder.add_note("C4", 0, 1, 0.8, "piano")
		builder.add_tempo_change(8, 90)
		builder.add_note("E4", 8, 1, 0.8, "piano")
		timeline = builder.build()
		[n.time_seconds for n in timeline.notes()]  # [0.0, 4.0]
		```
	"""

	def __init__ (self, settings: typing.Optional[etherdaw.score.Settings] = None) -> None:

		self.settings = settings or etherdaw.score.Settings()
		self.events: typing.List[Event] = []
		self.instruments: typing.List[str] = []


	def _use (self, instrument: str) -> None:

		if instrument not in self.instruments:
			self.instruments.append(instrument)


	def add_note (
		self,
		pitch: str,
		start: float,
		duration: float,
		velocity: float,
		instrument: str,
		expression: typing.Optional[typing.Mapping[str, typing.Any]] = None
	) -> "TimelineBuilder":

		self._use(instrument)
		self.events.append(NoteEvent(
			time = start,
			pitch = pitch,
			duration = duration,
			velocity = velocity,
			instrument = instrument,
			expression = dict(expression or {}),
		))

		return self


	def add_notes (self, notes: typing.Iterable[etherdaw.pattern.Note], instrument: str, offset: float = 0.0) -> int:

		"""Add resolved notes shifted by ``offset`` beats; return how many were added."""

		count = 0

		for note in notes:
			self.add_note(note.pitch, note.start + offset, note.duration, note.velocity, instrument, note.expression())
			count += 1

		return count


	def add_chord (
		self,
		pitches: typing.Sequence[str],
		start: float,
		duration: float,
		velocity: float,
		instrument: str
	) -> "TimelineBuilder":

		self._use(instrument)
		notes = [NoteEvent(time=start, pitch=pitch, duration=duration, velocity=velocity, instrument=instrument) for pitch in pitches]
		self.events.append(ChordEvent(time=start, notes=notes))

		return self


	def add_tempo_change (self, beat: float, tempo: float) -> "TimelineBuilder":

		if tempo <= 0:
			raise ValueError(f"Tempo must be positive, got {tempo}")

		self.events.append(TempoEvent(time=beat, tempo=tempo))

		return self


	def add_key_change (self, beat: float, key: str) -> "TimelineBuilder":

		self.events.append(KeyEvent(time=beat, key=key))

		return self


	def build (self) -> Timeline:

		return finalize(self.events, self.settings, self.instruments)


def _note_end_beats (event: Event) -> float:

	if isinstance(event, NoteEvent):
		return event.time + event.duration

	if isinstance(event, ChordEvent):
		return max((note.time + note.duration for note in event.notes), default=event.time)

	return 0.0


def finalize (
	events: typing.Iterable[Event],
	settings: etherdaw.score.Settings,
	instruments: typing.Iterable[str] = ()
) -> Timeline:

	"""
	Sort events by beat and give each one its absolute time in seconds.

	The walk keeps the beat and time of the last tempo change crossed.
	Before an event is timed, every tempo change at or before its beat is
	crossed: time advances to the change using the old tempo, then the new
	tempo takes over. Note durations in seconds use the tempo in force at
	the note's start. The input events are not modified.

	Returns:
		A ``Timeline`` whose ``total_seconds`` is the latest note end,
		chord members included.
	"""

	ordered = sorted((dataclasses.replace(event) for event in events), key=lambda event: event.time)
	changes = [event for event in ordered if isinstance(event, TempoEvent)]

	tempo = settings.tempo
	anchor_beat = 0.0
	anchor_seconds = 0.0
	next_change = 0

	for event in ordered:
		while next_change < len(changes) and changes[next_change].time <= event.time:
			change = changes[next_change]
			anchor_seconds += etherdaw.notation.beats_to_seconds(change.time - anchor_beat, tempo)
			anchor_beat = change.time
			tempo = change.tempo
			next_change += 1

		event.time_seconds = anchor_seconds + etherdaw.notation.beats_to_seconds(event.time - anchor_beat, tempo)

		if isinstance(event, NoteEvent):
			event.duration_seconds = etherdaw.notation.beats_to_seconds(event.duration, tempo)
		elif isinstance(event, ChordEvent):
			event.notes = [
				dataclasses.replace(
					note,
					time_seconds = event.time_seconds,
					duration_seconds = etherdaw.notation.beats_to_seconds(note.duration, tempo),
				)
				for note in event.notes
			]

	total_beats = max((_note_end_beats(event) for event in ordered), default=0.0)
	total_seconds = 0.0

	for event in ordered:
		if isinstance(event, NoteEvent):
			total_seconds = max(total_seconds, event.end_seconds)
		elif isinstance(event, ChordEvent):
			total_seconds = max([total_seconds] + [note.end_seconds for note in event.notes])

	logger.debug(f"Built timeline: {len(ordered)} events, {total_beats} beats, {total_seconds:.2f}s")

	return Timeline(
		events = ordered,
		total_beats = total_beats,
		total_seconds = total_seconds,
		instruments = list(instruments),
		settings = settings,
	)


# ---------------------------------------------------------------------------
# Timeline utilities
# ---------------------------------------------------------------------------

def filter_by_instrument (timeline: Timeline, instrument: str) -> typing.List[Event]:

	"""Events played by one instrument; tempo and key changes are kept."""

	result: typing.List[Event] = []

	for event in timeline.events:
		if isinstance(event, NoteEvent):
			if event.instrument == instrument:
				result.append(event)
		elif isinstance(event, ChordEvent):
			if any(note.instrument == instrument for note in event.notes):
				result.append(event)
		else:
			result.append(event)

	return result


def merge_timelines (timelines: typing.Sequence[Timeline]) -> Timeline:

	"""
	Combine timelines that play at the same time.

	Events are interleaved by beat; totals are the longest of the inputs and
	settings come from the first.

	Raises:
		ValueError: No timelines were given.
	"""

	if not timelines:
		raise ValueError("Cannot merge an empty list of timelines")

	events: typing.List[Event] = []
	instruments: typing.List[str] = []

	for timeline in timelines:
		events.extend(timeline.events)
		instruments.extend(name for name in timeline.instruments if name not in instruments)

	return Timeline(
		events = sorted(events, key=lambda event: event.time),
		total_beats = max(timeline.total_beats for timeline in timelines),
		total_seconds = max(timeline.total_seconds for timeline in timelines),
		instruments = instruments,
		settings = timelines[0].settings,
	)


def offset_timeline (timeline: Timeline, beats: float) -> Timeline:

	"""
	Move every event ``beats`` later. Only beat positions change; call
	``finalize`` on the events to recompute seconds.
	"""

	events: typing.List[Event] = []

	for event in timeline.events:
		if isinstance(event, ChordEvent):
			events.append(dataclasses.replace(
				event,
				time = event.time + beats,
				notes = [dataclasses.replace(note, time=note.time + beats) for note in event.notes],
			))
		else:
			events.append(dataclasses.replace(event, time=event.time + beats))

	return dataclasses.replace(timeline, events=events, total_beats=timeline.total_beats + beats)
