"""Instrument ids and their General MIDI programs.

Instrument ids are the plain names used throughout the studio (``"piano"``,
``"guitar"``). ``DEFAULT_CHANNEL_INSTRUMENTS`` follows the General-MIDI-like
convention of reserving channel 10 (0-indexed 9) for percussion.
"""

import typing


PIANO = "piano"
GUITAR = "guitar"
BASS = "bass"
VIOLIN = "violin"
FLUTE = "flute"
TRUMPET = "trumpet"
ORGAN = "organ"
SYNTH = "synth"
DRUMS = "drums"

DEFAULT_INSTRUMENT = PIANO


# 0-indexed channel -> instrument id.
DEFAULT_CHANNEL_INSTRUMENTS: typing.Dict[int, str] = {
	0: PIANO,
	1: GUITAR,
	2: BASS,
	3: VIOLIN,
	4: FLUTE,
	5: TRUMPET,
	6: ORGAN,
	7: SYNTH,
	9: DRUMS,
}


# Instrument id -> GM program number (0-indexed).
GM_PROGRAMS: typing.Dict[str, int] = {
	PIANO: 0,
	"electric_piano": 4,
	ORGAN: 19,
	GUITAR: 24,
	"electric_guitar": 27,
	BASS: 33,
	"synth_bass": 38,
	VIOLIN: 40,
	"cello": 42,
	"strings": 48,
	"choir": 52,
	TRUMPET: 56,
	"horns": 60,
	"saxophone": 65,
	FLUTE: 73,
	SYNTH: 81,
	"pad": 88,
}


def program_for (instrument: str) -> int:

	"""
	Return the GM program for an instrument id.

	Compound ids such as ``"strings-violin"`` or ``"piano-keyboard"`` are matched
	on their parts, last part first, before falling back to the piano.
	"""

	if instrument in GM_PROGRAMS:
		return GM_PROGRAMS[instrument]

	for part in reversed(instrument.replace("_", "-").split("-")):
		if part in GM_PROGRAMS:
			return GM_PROGRAMS[part]

	return GM_PROGRAMS[DEFAULT_INSTRUMENT]
