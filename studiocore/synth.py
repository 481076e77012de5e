"""Synthesis collaborators.

The engine never renders audio itself. Every sound request ends in a call on
an object satisfying ``SynthBackend``. ``MidiOutSynth`` is the bundled
backend: it renders to a General MIDI output port (a hardware synth, a drum
machine, or a software instrument such as FluidSynth listening on a virtual
port).
"""

import asyncio
import logging
import typing

import mido

import studiocore.constants
import studiocore.constants.gm_drums
import studiocore.constants.instruments
import studiocore.errors
import studiocore.midi_utils
import studiocore.pitch


logger = logging.getLogger(__name__)


@typing.runtime_checkable
class SynthBackend (typing.Protocol):

	"""
	Protocol for the external sound-rendering collaborator.
	"""

	async def setup (self) -> None:

		"""Prepare the output session. Raise on failure."""

		...


	async def resume_if_suspended (self) -> None:

		"""Bring a suspended output session back before rendering."""

		...


	def render_note (self, frequency_hz: float, duration_seconds: float, instrument: str, velocity: float) -> None:

		...


	def render_drum (self, drum_id: str, volume: float) -> None:

		...


	def set_master_volume (self, level: float) -> None:

		...


	def stop_all (self) -> None:

		"""Silence everything that is currently sounding."""

		...


	def close (self) -> None:

		...


class MidiOutSynth:

	"""
	Renders note and drum requests as General MIDI messages on an output port.

	Each instrument id is given its own channel (and a program change) the first
	time it is used; channel 9 is reserved for drums. Note-offs are scheduled on
	the running event loop after each note's duration.
	"""

	DRUM_HIT_SECONDS = 0.1

	def __init__ (self, output_device_name: typing.Optional[str] = None, interactive: bool = False) -> None:

		"""
		Parameters:
			output_device_name: MIDI output port name. When omitted, the only
				(or first) available port is used.
			interactive: Prompt on the console when several ports exist and no
				name was given.
		"""

		self.output_device_name = output_device_name
		self.interactive = interactive
		self.midi_out: typing.Any = None
		self.master_volume: float = 1.0

		self._instrument_channels: typing.Dict[str, int] = {}
		self._free_channels: typing.List[int] = []
		self._reset_channels()
		self._pending_offs: typing.Dict[typing.Tuple[int, int], asyncio.TimerHandle] = {}


	async def setup (self) -> None:

		"""
		Open the output port.

		Raises ``InitializationFailure`` when no port can be opened.
		"""

		device_name, midi_out = studiocore.midi_utils.select_output_device(self.output_device_name, self.interactive)

		if midi_out is None:
			raise studiocore.errors.InitializationFailure("No MIDI output port could be opened")

		self.output_device_name = device_name
		self.midi_out = midi_out

		# A reopened port has lost its program changes.
		self._reset_channels()


	async def resume_if_suspended (self) -> None:

		"""
		Reopen the port if the backend closed it (e.g. the device was unplugged and returned).
		"""

		if self.midi_out is not None and getattr(self.midi_out, "closed", False):
			logger.info(f"MIDI output '{self.output_device_name}' was closed, reopening")
			await self.setup()
			self.set_master_volume(self.master_volume)


	def render_note (self, frequency_hz: float, duration_seconds: float, instrument: str, velocity: float) -> None:

		"""
		Send a note-on now and schedule its note-off after ``duration_seconds``.
		"""

		note = studiocore.pitch.frequency_to_midi(frequency_hz)
		channel = self._channel_for(instrument)

		self._start_note(channel, note, _to_midi_velocity(velocity), duration_seconds)


	def render_drum (self, drum_id: str, volume: float) -> None:

		"""
		Send a short hit on the GM drum channel.
		"""

		note = studiocore.constants.gm_drums.STUDIO_DRUM_MAP.get(drum_id, studiocore.constants.gm_drums.FALLBACK_DRUM_NOTE)

		self._start_note(studiocore.constants.gm_drums.GM_DRUM_CHANNEL, note, _to_midi_velocity(volume), self.DRUM_HIT_SECONDS)


	def set_master_volume (self, level: float) -> None:

		"""
		Set channel volume (CC 7) on all channels. ``level`` is clamped to [0, 1].
		"""

		self.master_volume = max(0.0, min(1.0, level))
		value = int(round(self.master_volume * 127))

		for channel in range(studiocore.constants.MIDI_CHANNELS):
			self._send(mido.Message("control_change", channel=channel, control=7, value=value))


	def stop_all (self) -> None:

		"""
		Release every scheduled note and send All Notes Off (CC 123) to every channel.
		"""

		pending = list(self._pending_offs.items())
		self._pending_offs.clear()

		for _, handle in pending:
			handle.cancel()

		if self.midi_out is None:
			return

		for (channel, note), _ in pending:
			self._send(mido.Message("note_off", channel=channel, note=note, velocity=0))

		for channel in range(studiocore.constants.MIDI_CHANNELS):
			self._send(mido.Message("control_change", channel=channel, control=123, value=0))


	def close (self) -> None:

		if self.midi_out is None:
			return

		self.stop_all()
		self.midi_out.close()
		self.midi_out = None


	def _reset_channels (self) -> None:

		self._instrument_channels = {}
		self._free_channels = [
			channel for channel in range(studiocore.constants.MIDI_CHANNELS)
			if channel != studiocore.constants.gm_drums.GM_DRUM_CHANNEL
		]


	def _channel_for (self, instrument: str) -> int:

		"""
		Return (allocating on first use) the channel assigned to an instrument.
		"""

		if instrument == studiocore.constants.instruments.DRUMS:
			return studiocore.constants.gm_drums.GM_DRUM_CHANNEL

		if instrument in self._instrument_channels:
			return self._instrument_channels[instrument]

		if self._free_channels:
			channel = self._free_channels.pop(0)
		else:
			# Out of channels: share the oldest allocation.
			oldest = next(iter(self._instrument_channels))
			channel = self._instrument_channels.pop(oldest)

		self._instrument_channels[instrument] = channel
		program = studiocore.constants.instruments.program_for(instrument)
		self._send(mido.Message("program_change", channel=channel, program=program))

		logger.debug(f"Instrument {instrument!r} on channel {channel + 1} (program {program})")

		return channel


	def _start_note (self, channel: int, note: int, velocity: int, duration_seconds: float) -> None:

		key = (channel, note)

		# Retrigger: end the previous instance first so its note-off cannot cut the new one.
		previous = self._pending_offs.pop(key, None)
		if previous is not None:
			previous.cancel()
			self._send(mido.Message("note_off", channel=channel, note=note, velocity=0))

		self._send(mido.Message("note_on", channel=channel, note=note, velocity=velocity))

		loop = asyncio.get_running_loop()
		self._pending_offs[key] = loop.call_later(max(0.0, duration_seconds), self._end_note, channel, note)


	def _end_note (self, channel: int, note: int) -> None:

		self._pending_offs.pop((channel, note), None)

		try:
			self._send(mido.Message("note_off", channel=channel, note=note, velocity=0))
		except studiocore.errors.RenderFailure:
			logger.exception("MIDI note-off failed")


	def _send (self, message: mido.Message) -> None:

		if self.midi_out is None:
			raise studiocore.errors.RenderFailure("MIDI output is not open")

		try:
			self.midi_out.send(message)
		except Exception as e:
			raise studiocore.errors.RenderFailure(f"MIDI send failed (device may be disconnected): {e}") from e


def _to_midi_velocity (level: float) -> int:

	"""Map a [0, 1] level to a MIDI velocity of at least 1 (0 would read as note-off)."""

	return max(1, min(studiocore.constants.MAX_MIDI_VELOCITY, int(round(level * studiocore.constants.MAX_MIDI_VELOCITY))))
