"""Constants for the studio engine.

- ``studiocore.constants.gm_drums`` - General MIDI drum notes and the studio drum-id map
- ``studiocore.constants.instruments`` - Instrument ids, GM programs and the default channel map

Engine timing constants live here.
"""

# Patterns are one bar of sixteenth notes.
STEPS_PER_PATTERN = 16
STEPS_PER_BEAT = 4

# Fixed duration (seconds) for notes played from live MIDI input.
SUSTAINED_NOTE_SECONDS = 2.0

DEFAULT_NOTE_SECONDS = 0.5
DEFAULT_NOTE_VELOCITY = 0.7
DEFAULT_DRUM_VOLUME = 0.5

# MIDI standard range
MIN_MIDI_VELOCITY = 0
MAX_MIDI_VELOCITY = 127
MIDI_CHANNELS = 16
