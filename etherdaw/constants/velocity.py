"""Velocity, dynamics and articulation constants.

Velocity is a normalised attack strength (0.0-1.0). These constants define
sensible defaults and the tables used by the note-token grammar.
"""

import typing


# Primary defaults
DEFAULT_VELOCITY = 0.8           # Tracks that give no velocity
DEFAULT_MARKOV_VELOCITY = 0.7    # Lower bound for generated Markov notes
MARKOV_VELOCITY_SPREAD = 0.2     # Random spread added above the lower bound
DRUM_HIT_SCALE = 0.8             # Normal drum hits relative to the track velocity
DRUM_ACCENT_VELOCITY = 1.0       # Accented drum hits ('>')

MIN_VELOCITY = 0.0
MAX_VELOCITY = 1.0

# Dynamic markings accepted inside note tokens ("C4:q@mf").
DYNAMICS: typing.Dict[str, float] = {
	"ppp": 0.10,
	"pp": 0.20,
	"p": 0.35,
	"mp": 0.50,
	"mf": 0.65,
	"f": 0.80,
	"ff": 0.95,
	"fff": 1.0,
}

# Dynamic markings used when scaling a whole phrase.
PHRASE_DYNAMICS: typing.Dict[str, float] = {
	"ppp": 0.16,
	"pp": 0.26,
	"p": 0.36,
	"mp": 0.5,
	"mf": 0.64,
	"f": 0.78,
	"ff": 0.9,
	"fff": 1.0,
}

# Articulation symbol -> (gate, velocity boost). Gate multiplies the sounding
# duration; the step still advances by the written duration.
ARTICULATIONS: typing.Dict[str, typing.Tuple[float, float]] = {
	"": (1.0, 0.0),
	"*": (0.3, 0.0),
	"~": (1.1, 0.0),
	">": (1.0, 0.2),
	"^": (0.3, 0.2),
}

ARTICULATION_NAMES: typing.Dict[str, str] = {
	"": "normal",
	"*": "staccato",
	"~": "legato",
	">": "accent",
	"^": "marcato",
}

# Velocity envelope bounds relative to the base velocity.
ENVELOPE_FLOOR = 0.1
ENVELOPE_MIN_RATIO = 0.3
ENVELOPE_MAX_RATIO = 1.2
ENVELOPE_OFFBEAT_RATIO = 0.7

# Humanize maxima at amount = 1.0.
HUMANIZE_TIMING = 0.05      # beats
HUMANIZE_VELOCITY = 0.1
HUMANIZE_DURATION = 0.05    # fraction of the duration
MIN_HUMANIZED_DURATION = 0.01
