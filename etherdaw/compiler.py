"""Compile a score into a timeline.

``compile`` walks the arrangement in order. For each section it emits tempo
and key changes where the section differs from what is already playing,
resolves every track to the section's length and adds the notes at the
section's beat offset. Problems with the score (unknown sections, patterns
or instruments, malformed tokens) never stop compilation: they are
collected as diagnostics next to a best-effort timeline.
"""

import dataclasses
import logging
import random
import typing

import etherdaw.constants
import etherdaw.diagnostics
import etherdaw.notation
import etherdaw.resolver
import etherdaw.score
import etherdaw.timeline


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class CompileOptions:

	"""
	Attributes:
		start_section: First arrangement entry to compile (its first occurrence).
		end_section: Last arrangement entry to compile (its first occurrence).
		tempo: Replaces the score tempo.
		key: Replaces the score key.
		skip_muted: When ``False``, muted tracks play as if unmuted.
		seed: Seed for the random source when ``rng`` is not given.
		rng: Random source for every random decision in the compilation.
	"""

	start_section: typing.Optional[str] = None
	end_section: typing.Optional[str] = None
	tempo: typing.Optional[float] = None
	key: typing.Optional[str] = None
	skip_muted: bool = True
	seed: typing.Optional[int] = None
	rng: typing.Optional[random.Random] = None


@dataclasses.dataclass
class CompileStats:

	total_sections: int
	total_bars: int
	total_notes: int
	instruments: typing.List[str]
	duration_seconds: float

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"totalSections": self.total_sections,
			"totalBars": self.total_bars,
			"totalNotes": self.total_notes,
			"instruments": list(self.instruments),
			"durationSeconds": self.duration_seconds,
		}


@dataclasses.dataclass
class CompileResult:

	timeline: etherdaw.timeline.Timeline
	diagnostics: etherdaw.diagnostics.Diagnostics
	stats: CompileStats

	@property
	def warnings (self) -> typing.List[str]:

		"""Every diagnostic message, errors included."""

		return self.diagnostics.messages()


def _as_score (score: typing.Union[etherdaw.score.Score, typing.Mapping[str, typing.Any]]) -> etherdaw.score.Score:

	if isinstance(score, etherdaw.score.Score):
		return score

	return etherdaw.score.Score.from_dict(score)


def validate_score (score: typing.Union[etherdaw.score.Score, typing.Mapping[str, typing.Any]]) -> etherdaw.diagnostics.Diagnostics:

	"""
	Check every reference in a score without compiling it.

	Reports arrangement entries with no section, track patterns with no
	definition and, when the score declares instruments, tracks with no
	matching instrument.
	"""

	score = _as_score(score)
	diagnostics = etherdaw.diagnostics.Diagnostics()

	for name in score.arrangement:
		if name not in score.sections:
			diagnostics.warn(f'Arrangement references unknown section: "{name}"', source=name)

	for section_name, section in score.sections.items():
		for track_name, track in section.tracks.items():
			for pattern_name in track.pattern_names:
				if pattern_name not in score.patterns:
					diagnostics.warn(
						f'Section "{section_name}" track "{track_name}" references unknown pattern: "{pattern_name}"',
						source = section_name,
					)

	if score.instruments is not None:
		for section_name, section in score.sections.items():
			for track_name in section.tracks:
				if track_name not in score.instruments:
					diagnostics.warn(f'Section "{section_name}" has track "{track_name}" with no matching instrument', source=section_name)

	return diagnostics


def _window (arrangement: typing.List[str], options: CompileOptions, diagnostics: etherdaw.diagnostics.Diagnostics) -> typing.List[typing.Tuple[int, str]]:

	start = 0
	end = len(arrangement)

	if options.start_section is not None:
		if options.start_section in arrangement:
			start = arrangement.index(options.start_section)
		else:
			diagnostics.warn(f'Start section "{options.start_section}" is not in the arrangement')

	if options.end_section is not None:
		if options.end_section in arrangement:
			end = arrangement.index(options.end_section) + 1
		else:
			diagnostics.warn(f'End section "{options.end_section}" is not in the arrangement')

	return list(enumerate(arrangement))[start:end]


def _unmuted (section: etherdaw.score.Section) -> etherdaw.score.Section:

	return dataclasses.replace(section, tracks={name: dataclasses.replace(track, mute=False) for name, track in section.tracks.items()})


def compile (
	score: typing.Union[etherdaw.score.Score, typing.Mapping[str, typing.Any]],
	options: typing.Optional[CompileOptions] = None
) -> CompileResult:

	"""
	Compile a score into a timeline.

	Parameters:
		score: A ``Score`` or a score document dictionary.
		options: Section window, tempo/key overrides and randomness. The
			defaults compile the whole arrangement with an unseeded source.

	Returns:
		The timeline, the diagnostics and summary statistics.

	Raises:
		ValueError: The time signature is invalid (checked before any work).
		ScoreError: A document dictionary cannot be loaded.

	Example:
		```python
		result = compile({
			"settings": {"tempo": 120},
			"patterns": {"a": {"notes": "C4:q D4:q E4:q F4:q"}},
			"sections": {"verse": {"bars": 4, "tracks": {"piano": {"pattern": "a"}}}},
			"arrangement": ["verse"],
		}, CompileOptions(seed=1))
		result.stats.total_notes        # 16
		result.timeline.total_seconds   # 8.0
		```
	"""

	score = _as_score(score)
	options = options or CompileOptions()

	beats_per_bar = etherdaw.notation.beats_per_bar(score.settings.time_signature)

	settings = dataclasses.replace(
		score.settings,
		tempo = options.tempo if options.tempo is not None else score.settings.tempo,
		key = options.key if options.key is not None else score.settings.key,
	)

	rng = options.rng if options.rng is not None else random.Random(options.seed)
	diagnostics = validate_score(score)
	resolution_diagnostics = etherdaw.diagnostics.Diagnostics()
	builder = etherdaw.timeline.TimelineBuilder(settings)

	tempo = settings.tempo
	key = settings.key
	beat = 0.0
	total_bars = 0
	total_notes = 0
	compiled = 0

	for index, name in _window(score.arrangement, options, diagnostics):
		section = score.sections.get(name)

		if section is None:
			continue

		section_tempo = section.tempo if section.tempo is not None else settings.tempo
		section_key = section.key if section.key is not None else settings.key

		if section_tempo != tempo:
			builder.add_tempo_change(beat, section_tempo)
			tempo = section_tempo

		if section_key != key:
			builder.add_key_change(beat, section_key)
			key = section_key

		context = etherdaw.resolver.ResolutionContext(
			patterns = score.patterns,
			settings = dataclasses.replace(settings, tempo=section_tempo, key=section_key),
			rng = rng,
			diagnostics = resolution_diagnostics,
			section = name,
			section_index = index,
			density = section.density,
		)

		tracks = etherdaw.resolver.resolve_section(section if options.skip_muted else _unmuted(section), context)

		for instrument, notes in tracks.items():
			total_notes += builder.add_notes(notes, instrument, offset=beat)

		logger.debug(f"Section {name} at beat {beat}: {sum(len(notes) for notes in tracks.values())} notes")

		beat += section.bars * beats_per_bar
		total_bars += section.bars
		compiled += 1

	diagnostics.extend(resolution_diagnostics, unique=True)
	timeline = builder.build()

	stats = CompileStats(
		total_sections = compiled,
		total_bars = total_bars,
		total_notes = total_notes,
		instruments = list(timeline.instruments),
		duration_seconds = timeline.total_seconds,
	)

	logger.info(f"Compiled {compiled} sections, {total_notes} notes, {timeline.total_seconds:.2f}s")

	return CompileResult(timeline=timeline, diagnostics=diagnostics, stats=stats)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class SectionSummary:

	name: str
	bars: int
	instruments: typing.List[str]


@dataclasses.dataclass
class ScoreAnalysis:

	"""What a score contains, without compiling it. ``duration_seconds`` honours section tempos."""

	total_sections: int
	total_bars: int
	instruments: typing.List[str]
	duration_seconds: float
	sections: typing.List[SectionSummary]
	patterns: typing.List[str]


def analyze (score: typing.Union[etherdaw.score.Score, typing.Mapping[str, typing.Any]]) -> ScoreAnalysis:

	score = _as_score(score)
	beats_per_bar = etherdaw.notation.beats_per_bar(score.settings.time_signature)

	sections = []
	instruments: typing.List[str] = []
	total_bars = 0
	duration = 0.0

	for name in score.arrangement:
		section = score.sections.get(name)

		if section is None:
			continue

		total_bars += section.bars
		tempo = section.tempo if section.tempo is not None else score.settings.tempo
		duration += etherdaw.notation.beats_to_seconds(section.bars * beats_per_bar, tempo)
		instruments.extend(track for track in section.tracks if track not in instruments)
		sections.append(SectionSummary(name=name, bars=section.bars, instruments=list(section.tracks)))

	return ScoreAnalysis(
		total_sections = len(score.arrangement),
		total_bars = total_bars,
		instruments = instruments,
		duration_seconds = duration,
		sections = sections,
		patterns = list(score.patterns),
	)


def create_simple_score (
	patterns: typing.Mapping[str, typing.Union[str, typing.Sequence[str]]],
	bars: int = 4,
	tempo: float = etherdaw.constants.DEFAULT_TEMPO,
	key: str = etherdaw.constants.DEFAULT_KEY
) -> etherdaw.score.Score:

	"""
	A one-section score with one track per note pattern, named after the pattern.

	Example:
		```python
		score = create_simple_score({"lead": ["C4:q", "E4:q", "G4:h"]}, bars=2)
		score.arrangement  # ['main']
		```
	"""

	return etherdaw.score.Score.from_dict({
		"settings": {"tempo": tempo, "key": key},
		"patterns": {name: {"notes": notes} for name, notes in patterns.items()},
		"sections": {"main": {"bars": bars, "tracks": {name: {"pattern": name} for name in patterns}}},
		"arrangement": ["main"],
	})
