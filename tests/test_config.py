import pathlib

import pytest

import studiocore.config
import studiocore.midi_input


def test_missing_file_gives_defaults (tmp_path: pathlib.Path) -> None:

	config = studiocore.config.load_config(str(tmp_path / "nope.yaml"))

	assert config == studiocore.config.StudioConfig()
	assert config.midi_settings == studiocore.midi_input.MidiSettings()
	assert config.osc.enabled is False


def test_empty_file_gives_defaults (tmp_path: pathlib.Path) -> None:

	path = tmp_path / "config.yaml"
	path.write_text("")

	assert studiocore.config.load_config(str(path)) == studiocore.config.StudioConfig()


def test_full_config (tmp_path: pathlib.Path) -> None:

	path = tmp_path / "config.yaml"
	path.write_text(
		"audio:\n"
		"  output_device: FluidSynth\n"
		"  master_volume: 80\n"
		"sequencer:\n"
		"  bpm: 96\n"
		"midi:\n"
		"  poll_interval: 0.5\n"
		"  sustained_duration: 1.5\n"
		"  settings:\n"
		"    channel_mode: single\n"
		"    active_channel: 3\n"
		"    note_range: [36, 96]\n"
		"osc:\n"
		"  enabled: true\n"
		"  receive_port: 9100\n"
	)

	config = studiocore.config.load_config(str(path))

	assert config.output_device == "FluidSynth"
	assert config.master_volume == 80
	assert config.bpm == 96
	assert config.poll_interval == 0.5
	assert config.sustained_duration == 1.5
	assert config.midi_settings.channel_mode == "single"
	assert config.midi_settings.active_channel == 3
	assert config.midi_settings.note_range == (36, 96)
	assert config.midi_settings.velocity_sensitivity == 100
	assert config.osc == studiocore.config.OscConfig(enabled=True, receive_port=9100)


def test_unknown_midi_setting_rejected () -> None:

	with pytest.raises(ValueError, match="aftertouch"):
		studiocore.config.parse_config({"midi": {"settings": {"aftertouch": True}}})


def test_example_config_parses () -> None:

	path = pathlib.Path(__file__).parent.parent / "config.yaml.example"

	config = studiocore.config.load_config(str(path))

	assert config.output_device is None
	assert config.master_volume == 80
	assert config.midi_settings.note_range == (21, 108)
