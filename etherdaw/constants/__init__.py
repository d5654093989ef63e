"""Constants for EtherDAW.

This package contains two sets of constants:

- ``etherdaw.constants.durations`` - Beat-based durations and the duration-code table
- ``etherdaw.constants.velocity`` - Velocity, dynamics, articulation and humanize tables

Score-wide defaults live here directly.
"""

import typing


DEFAULT_TEMPO = 120.0
DEFAULT_KEY = "C major"
DEFAULT_TIME_SIGNATURE = "4/4"
DEFAULT_SWING = 0.0

DEFAULT_SETTINGS: typing.Dict[str, typing.Any] = {
	"tempo": DEFAULT_TEMPO,
	"key": DEFAULT_KEY,
	"time_signature": DEFAULT_TIME_SIGNATURE,
	"swing": DEFAULT_SWING,
}

# Octaves used when a token or generator gives none.
DEFAULT_NOTE_OCTAVE = 4
DEFAULT_CHORD_OCTAVE = 3
DEFAULT_MARKOV_OCTAVE = 3

# Arpeggiator defaults.
ARPEGGIO_DEFAULT_OCTAVES = 1
ARPEGGIO_DEFAULT_GATE = 0.8
ARPEGGIO_DEFAULT_MODE = "up"
ARPEGGIO_DEFAULT_DURATION = "16"

# Drum sequencer defaults.
DRUM_DEFAULT_KIT = "909"
DRUM_DEFAULT_STEP = "16"
DRUM_NAMES: typing.Tuple[str, ...] = (
	"kick", "snare", "hihat", "openhat", "closedhat", "clap", "rim",
	"tom_hi", "tom_mid", "tom_lo", "crash", "ride", "cowbell", "shaker", "perc",
)

# Each chord in a voice-led progression lasts one 4/4 bar.
VOICE_LEAD_CHORD_BEATS = 4.0
