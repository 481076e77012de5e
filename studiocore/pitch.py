"""Pitch names, MIDI note numbers and equal-temperament frequencies.

Module-level constants:
- ``NOTE_NAME_TO_PC``: Maps note names (``"C"``, ``"F#"``, ``"Bb"``) to pitch classes (0-11)
- ``PC_TO_NOTE_NAME``: Maps pitch classes to sharp note names, C first

Convention: **C4 = 60** (Middle C) and A4 = 69 = 440 Hz.
"""

import logging
import math
import typing


logger = logging.getLogger(__name__)


A4_FREQUENCY = 440.0
A4_MIDI_NOTE = 69

NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Case-insensitive lookup ("c#", "BB" and "bb" all work).
_UPPER_NAME_TO_PC: typing.Dict[str, int] = {name.upper(): pc for name, pc in NOTE_NAME_TO_PC.items()}


def pitch_class (name: str) -> typing.Optional[int]:

	"""
	Return the pitch class (0-11) for a note name, or ``None`` if unknown.
	"""

	return _UPPER_NAME_TO_PC.get(name.strip().upper())


def note_number (name: str, octave: int) -> int:

	"""
	Return the MIDI note number for a pitch name and octave.

	Raises ``ValueError`` for unknown names.
	"""

	pc = pitch_class(name)

	if pc is None:
		raise ValueError(f"Unknown note name: {name!r}")

	return (octave + 1) * 12 + pc


def midi_to_frequency (note: float) -> float:

	"""
	Convert a MIDI note number to Hz using 12-tone equal temperament.
	"""

	return A4_FREQUENCY * 2 ** ((note - A4_MIDI_NOTE) / 12)


def note_frequency (name: str, octave: int = 4) -> float:

	"""
	Convert a pitch name and octave to Hz.

	Unknown names log a warning and fall back to A4 (440 Hz) so a typo in
	a melody never silences the whole run.
	"""

	pc = pitch_class(name)

	if pc is None:
		logger.warning(f"Unknown note: {name!r}, using A4")
		return A4_FREQUENCY

	return midi_to_frequency((octave + 1) * 12 + pc)


def frequency_to_midi (frequency: float) -> int:

	"""
	Return the nearest MIDI note number (clamped to 0-127) for a frequency.
	"""

	if frequency <= 0:
		raise ValueError("Frequency must be positive")

	note = int(round(A4_MIDI_NOTE + 12 * math.log2(frequency / A4_FREQUENCY)))

	return max(0, min(127, note))


def midi_to_name (note: int) -> typing.Tuple[str, int]:

	"""
	Split a MIDI note number into ``(pitch_class_name, octave)``.

	``midi_to_name(60)`` is ``("C", 4)``; ``midi_to_name(69)`` is ``("A", 4)``.
	"""

	if not 0 <= note <= 127:
		raise ValueError(f"MIDI note out of range: {note}")

	return PC_TO_NOTE_NAME[note % 12], note // 12 - 1
