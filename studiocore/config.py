"""YAML configuration.

Example ``config.yaml``::

    audio:
      output_device: "FluidSynth virtual port"
      master_volume: 80
    sequencer:
      bpm: 120
    midi:
      poll_interval: 1.0
      sustained_duration: 2.0
      settings:
        velocity_sensitivity: 100
        channel_mode: omni
    osc:
      enabled: true
      receive_port: 9000
      send_port: 9001
      send_host: 127.0.0.1

Every key is optional.
"""

import dataclasses
import logging
import os
import typing

import yaml

import studiocore.constants
import studiocore.midi_input


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class OscConfig:

	enabled: bool = False
	receive_port: int = 9000
	send_port: int = 9001
	send_host: str = "127.0.0.1"


@dataclasses.dataclass
class StudioConfig:

	output_device: typing.Optional[str] = None
	master_volume: float = 100
	bpm: float = 120
	poll_interval: float = 1.0
	sustained_duration: float = studiocore.constants.SUSTAINED_NOTE_SECONDS
	midi_settings: studiocore.midi_input.MidiSettings = dataclasses.field(default_factory=studiocore.midi_input.MidiSettings)
	osc: OscConfig = dataclasses.field(default_factory=OscConfig)


def load_config (config_path: str = 'config.yaml') -> StudioConfig:

	"""
	Load configuration from a YAML file. A missing file gives the defaults.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return StudioConfig()

	with open(config_path, 'r') as f:
		raw = yaml.safe_load(f) or {}

	return parse_config(raw)


def parse_config (raw: typing.Mapping[str, typing.Any]) -> StudioConfig:

	"""
	Build a ``StudioConfig`` from already-parsed YAML data.

	Raises ``ValueError`` for unknown MIDI settings.
	"""

	audio = raw.get('audio') or {}
	sequencer = raw.get('sequencer') or {}
	midi = raw.get('midi') or {}
	osc = raw.get('osc') or {}

	settings = dict(midi.get('settings') or {})

	unknown = set(settings) - studiocore.midi_input.SETTINGS_FIELDS
	if unknown:
		raise ValueError(f"Unknown MIDI settings in config: {sorted(unknown)}")

	if 'note_range' in settings:
		settings['note_range'] = tuple(settings['note_range'])

	return StudioConfig(
		output_device = audio.get('output_device'),
		master_volume = audio.get('master_volume', 100),
		bpm = sequencer.get('bpm', 120),
		poll_interval = midi.get('poll_interval', 1.0),
		sustained_duration = midi.get('sustained_duration', studiocore.constants.SUSTAINED_NOTE_SECONDS),
		midi_settings = studiocore.midi_input.MidiSettings(**settings),
		osc = OscConfig(**osc)
	)
