"""General MIDI Level 1 drum notes and the studio drum-id map.

Standard MIDI percussion assignments for channel 10 (0-indexed channel 9).
The studio refers to drums by short ids (``"kick"``, ``"snare"``, ``"hihat"``);
``STUDIO_DRUM_MAP`` translates those ids to GM note numbers for backends that
render to a MIDI port.
"""

import typing


GM_DRUM_CHANNEL = 9

KICK_2 = 35
KICK_1 = 36
SIDE_STICK = 37
SNARE_1 = 38
HAND_CLAP = 39
SNARE_2 = 40
LOW_FLOOR_TOM = 41
HI_HAT_CLOSED = 42
HI_HAT_PEDAL = 44
LOW_TOM = 45
HI_HAT_OPEN = 46
CRASH_1 = 49
RIDE_1 = 51
TAMBOURINE = 54
COWBELL = 56
HIGH_BONGO = 60
LOW_CONGA = 64
SHAKER = 82


STUDIO_DRUM_MAP: typing.Dict[str, int] = {
	"kick": KICK_1,
	"snare": SNARE_1,
	"hihat": HI_HAT_CLOSED,
	"openhat": HI_HAT_OPEN,
	"clap": HAND_CLAP,
	"crash": CRASH_1,
	"ride": RIDE_1,
	"tom": LOW_TOM,
	"bass": KICK_2,
	"perc": LOW_CONGA,
	"rim": SIDE_STICK,
	"shaker": SHAKER,
	"tambourine": TAMBOURINE,
	"cowbell": COWBELL,
}

# Unknown drum ids still make a sound.
FALLBACK_DRUM_NOTE = LOW_FLOOR_TOM


# Per-track loudness used by the step sequencer (tracks not listed use DEFAULT_TRACK_VOLUME).
TRACK_VOLUMES: typing.Dict[str, float] = {
	"kick": 0.8,
	"snare": 0.7,
	"hihat": 0.4,
	"openhat": 0.5,
	"bass": 0.6,
	"perc": 0.5,
}

DEFAULT_TRACK_VOLUME = 0.7
