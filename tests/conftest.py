import asyncio
import typing

import mido
import pytest

import studiocore.errors
import studiocore.midi_input
import studiocore.session
import studiocore.trigger


class FakeMidiOut:

	"""MIDI output stub that records what was sent."""

	def __init__ (self) -> None:

		self.sent: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		self.sent.append(message)


	def close (self) -> None:

		self.closed = True


class FakeMidiIn:

	"""Minimal MIDI input stub for tests."""

	def __init__ (self, callback: typing.Optional[typing.Callable] = None) -> None:

		"""Store the callback for injecting test messages."""

		self.callback = callback
		self.closed = False

	def close (self) -> None:

		self.closed = True

	def inject (self, message: mido.Message) -> None:

		"""Simulate receiving a MIDI message by calling the stored callback."""

		if self.callback is not None:
			self.callback(message)


# Module-level references so tests can reach the most recently created fakes.
_current_fake_output: typing.Optional[FakeMidiOut] = None
_fake_port_names: typing.List[str] = ["Dummy MIDI"]


def _fake_get_output_names () -> typing.List[str]:

	return list(_fake_port_names)


def _fake_open_output (name: str) -> FakeMidiOut:

	global _current_fake_output
	_current_fake_output = FakeMidiOut()
	return _current_fake_output


def _fake_get_input_names () -> typing.List[str]:

	return list(_fake_port_names)


def _fake_open_input (name: str, callback: typing.Optional[typing.Callable] = None) -> FakeMidiIn:

	return FakeMidiIn(callback=callback)


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use fake MIDI output and input for all tests that need it."""

	global _fake_port_names
	_fake_port_names = ["Dummy MIDI"]

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)
	monkeypatch.setattr(mido, "get_input_names", _fake_get_input_names)
	monkeypatch.setattr(mido, "open_input", _fake_open_input)


def set_fake_port_names (names: typing.List[str]) -> None:

	global _fake_port_names
	_fake_port_names = list(names)


def current_fake_output () -> typing.Optional[FakeMidiOut]:

	return _current_fake_output


class FakeSynth:

	"""Synthesis backend stub that records every call."""

	def __init__ (self, fail_setups: int = 0, setup_delay: float = 0.0, fail_render: bool = False) -> None:

		self.fail_setups = fail_setups
		self.setup_delay = setup_delay
		self.fail_render = fail_render

		self.setup_calls = 0
		self.resume_calls = 0
		self.stop_all_calls = 0
		self.closed = False
		self.notes: typing.List[typing.Tuple[float, float, str, float]] = []
		self.drums: typing.List[typing.Tuple[str, float]] = []
		self.volumes: typing.List[float] = []


	async def setup (self) -> None:

		self.setup_calls += 1

		if self.setup_delay:
			await asyncio.sleep(self.setup_delay)

		if self.fail_setups > 0:
			self.fail_setups -= 1
			raise RuntimeError("no audio device")


	async def resume_if_suspended (self) -> None:

		self.resume_calls += 1


	def render_note (self, frequency_hz: float, duration_seconds: float, instrument: str, velocity: float) -> None:

		if self.fail_render:
			raise studiocore.errors.RenderFailure("render failed")

		self.notes.append((frequency_hz, duration_seconds, instrument, velocity))


	def render_drum (self, drum_id: str, volume: float) -> None:

		if self.fail_render:
			raise studiocore.errors.RenderFailure("render failed")

		self.drums.append((drum_id, volume))


	def set_master_volume (self, level: float) -> None:

		self.volumes.append(level)


	def stop_all (self) -> None:

		self.stop_all_calls += 1


	def close (self) -> None:

		self.closed = True


class FakeTrigger:

	"""Trigger stub: records drum hits as soon as the call starts running."""

	def __init__ (self) -> None:

		self.drums: typing.List[typing.Tuple[str, float]] = []


	async def play_drum_sound (self, drum_id: str, volume: float = 0.5) -> None:

		self.drums.append((drum_id, volume))


class FakeAccess:

	"""Device-access handle stub with controllable ports and hot-plug."""

	def __init__ (self, inputs: typing.Sequence[str] = ("Keys",), outputs: typing.Sequence[str] = ("Synth",)) -> None:

		self.input_names = list(inputs)
		self.output_names = list(outputs)
		self.ports: typing.Dict[str, FakeMidiIn] = {}
		self.state_listeners: typing.List[typing.Callable[[], typing.Any]] = []
		self.closed = False


	@property
	def inputs (self) -> typing.Tuple[studiocore.midi_input.MidiDevice, ...]:

		return tuple(
			studiocore.midi_input.MidiDevice(id=name, name=name, manufacturer="Test", connection_kind="input")
			for name in self.input_names
		)


	@property
	def outputs (self) -> typing.Tuple[studiocore.midi_input.MidiDevice, ...]:

		return tuple(
			studiocore.midi_input.MidiDevice(id=name, name=name, manufacturer="Test", connection_kind="output")
			for name in self.output_names
		)


	def open_input (self, device_id: str, callback: typing.Callable) -> FakeMidiIn:

		port = FakeMidiIn(callback=callback)
		self.ports[device_id] = port
		return port


	def on_state_change (self, callback: typing.Callable[[], typing.Any]) -> None:

		self.state_listeners.append(callback)


	def plug (self, inputs: typing.Sequence[str], outputs: typing.Optional[typing.Sequence[str]] = None) -> None:

		"""Replace the port lists and fire the hot-plug notification."""

		self.input_names = list(inputs)

		if outputs is not None:
			self.output_names = list(outputs)

		for callback in list(self.state_listeners):
			callback()


	def close (self) -> None:

		self.closed = True


class FakeProvider:

	def __init__ (self, access: typing.Optional[FakeAccess] = None, error: typing.Optional[Exception] = None) -> None:

		self.access = access if access is not None else FakeAccess()
		self.error = error
		self.requests = 0


	async def request_access (self) -> FakeAccess:

		self.requests += 1

		if self.error is not None:
			raise self.error

		return self.access


@pytest.fixture
def synth () -> FakeSynth:

	return FakeSynth()


@pytest.fixture
def session (synth: FakeSynth) -> studiocore.session.AudioSession:

	return studiocore.session.AudioSession(synth)


@pytest.fixture
def trigger (session: studiocore.session.AudioSession) -> studiocore.trigger.NoteTrigger:

	return studiocore.trigger.NoteTrigger(session)
