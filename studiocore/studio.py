import asyncio
import logging
import signal
import typing

import studiocore.config
import studiocore.constants
import studiocore.errors
import studiocore.event_emitter
import studiocore.melody
import studiocore.midi_input
import studiocore.osc
import studiocore.session
import studiocore.step_sequencer
import studiocore.synth
import studiocore.trigger


logger = logging.getLogger(__name__)


class Studio:

	"""
	The engine's surface for the UI layer.

	A ``Studio`` owns one audio session and wires it to the note trigger, the
	step sequencer, the melody scheduler and the MIDI device manager. All of
	them share one ``EventEmitter``, so a UI can follow everything through
	``on_event()``:

	- ``"initialized"`` - the audio session became ready
	- ``"notification"`` - a one-time user-visible message (``Notification``)
	- ``"step"`` - the step sequencer played step ``n``
	- ``"devices"``, ``"note_on"``, ``"note_off"``, ``"control_change"``,
	  ``"program_change"`` - MIDI input activity

	Example::

	    studio = studiocore.Studio(output_device="FluidSynth virtual port")

	    async def main ():
	        await studio.initialize()
	        studio.play_pattern({"kick": [True, False, False, False] * 4}, bpm=120)
	        await asyncio.sleep(4)
	        await studio.close()
	"""

	def __init__ (
		self,
		output_device: typing.Optional[str] = None,
		synth: typing.Optional[studiocore.synth.SynthBackend] = None,
		midi_provider: typing.Optional[typing.Any] = None,
		midi_settings: typing.Optional[studiocore.midi_input.MidiSettings] = None,
		sustained_duration: float = studiocore.constants.SUSTAINED_NOTE_SECONDS,
		bpm: float = 120
	) -> None:

		"""
		Parameters:
			output_device: MIDI output port for the bundled ``MidiOutSynth``.
				Ignored when ``synth`` is given.
			synth: Any ``SynthBackend``; defaults to ``MidiOutSynth``.
			midi_provider: Device-access provider for MIDI input; defaults to mido.
			midi_settings: Initial MIDI input settings.
			sustained_duration: Seconds each live MIDI note sounds for.
			bpm: Default tempo for patterns and melodies.
		"""

		self.events = studiocore.event_emitter.EventEmitter()
		self.bpm = bpm
		self.master_volume: typing.Optional[float] = None

		self.synth: studiocore.synth.SynthBackend = synth if synth is not None else studiocore.synth.MidiOutSynth(output_device)
		self.session = studiocore.session.AudioSession(self.synth, self.events)
		self.trigger = studiocore.trigger.NoteTrigger(self.session)
		self.sequencer = studiocore.step_sequencer.StepSequencer(self.trigger, self.events)
		self.melody = studiocore.melody.MelodyScheduler(self.trigger)
		self.midi = studiocore.midi_input.MidiDeviceManager(
			self.trigger,
			provider = midi_provider,
			settings = midi_settings,
			events = self.events,
			sustained_duration = sustained_duration
		)

		self._osc_bridge: typing.Optional[studiocore.osc.OscBridge] = None

		self.session.on_initialized(self._apply_master_volume)


	@classmethod
	def from_config (cls, config: studiocore.config.StudioConfig, synth: typing.Optional[studiocore.synth.SynthBackend] = None) -> "Studio":

		"""
		Build a studio from a loaded ``StudioConfig``.
		"""

		studio = cls(
			output_device = config.output_device,
			synth = synth,
			midi_provider = studiocore.midi_input.MidoAccessProvider(poll_interval=config.poll_interval),
			midi_settings = config.midi_settings,
			sustained_duration = config.sustained_duration,
			bpm = config.bpm
		)

		studio.master_volume = config.master_volume

		if config.osc.enabled:
			studio.osc(config.osc.receive_port, config.osc.send_port, config.osc.send_host)

		return studio


	# Observable state

	@property
	def is_initialized (self) -> bool:

		return self.session.is_initialized


	@property
	def connected_devices (self) -> typing.Tuple[studiocore.midi_input.MidiDevice, ...]:

		return self.midi.connected_devices


	@property
	def active_notes (self) -> typing.FrozenSet[int]:

		return self.midi.active_notes


	@property
	def last_note (self) -> typing.Optional[studiocore.midi_input.LastNote]:

		return self.midi.last_note


	@property
	def midi_settings (self) -> studiocore.midi_input.MidiSettings:

		return self.midi.settings


	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> typing.Callable[[], None]:

		"""
		Register a callback for a named event. Returns an unsubscribe function.
		"""

		return self.events.on(event_name, callback)


	# Sound

	async def initialize (self) -> None:

		"""
		Set up the audio session (safe to call repeatedly or concurrently).
		"""

		await self.session.initialize()


	async def play_note (self, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""See ``NoteTrigger.play_note``."""

		await self.trigger.play_note(*args, **kwargs)


	async def play_drum_sound (self, drum_id: str, volume: float = studiocore.constants.DEFAULT_DRUM_VOLUME) -> None:

		await self.trigger.play_drum_sound(drum_id, volume)


	def set_master_volume (self, percent: float) -> None:

		"""Set the output level from a 0-100 percentage."""

		self.master_volume = percent
		self.trigger.set_master_volume(percent)


	def play_pattern (self, pattern: studiocore.step_sequencer.Pattern, bpm: typing.Optional[float] = None) -> None:

		self.sequencer.play_pattern(pattern, bpm if bpm is not None else self.bpm)


	def stop_pattern (self) -> None:

		self.sequencer.stop_pattern()


	def play_melody (self, notes: typing.Iterable[studiocore.melody.NoteEvent], bpm: typing.Optional[float] = None) -> None:

		self.melody.play_melody(notes, bpm if bpm is not None else self.bpm)


	def stop_melody (self) -> None:

		self.melody.stop_melody()


	def _apply_master_volume (self) -> None:

		if self.master_volume is not None:
			self.trigger.set_master_volume(self.master_volume)


	# MIDI input

	async def initialize_midi (self) -> bool:

		return await self.midi.initialize_midi()


	def refresh_devices (self) -> None:

		self.midi.refresh_devices()


	def update_settings (self, partial: typing.Optional[typing.Mapping[str, typing.Any]] = None, **fields: typing.Any) -> studiocore.midi_input.MidiSettings:

		return self.midi.update_settings(partial, **fields)


	def reset_settings (self) -> studiocore.midi_input.MidiSettings:

		return self.midi.reset_settings()


	# Remote control

	def osc (self, receive_port: int = 9000, send_port: int = 9001, send_host: str = "127.0.0.1") -> None:

		"""
		Enable the OSC bridge (remote control and state broadcasting).

		The bridge is started by ``start()``.
		"""

		self._osc_bridge = studiocore.osc.OscBridge(
			self,
			receive_port = receive_port,
			send_port = send_port,
			send_host = send_host
		)


	# Lifecycle

	async def start (self) -> None:

		"""
		Initialize audio and MIDI input and start the OSC bridge if enabled.

		Audio and MIDI failures are reported as notifications; the studio
		keeps running with whatever did start.
		"""

		try:
			await self.initialize()
		except studiocore.errors.InitializationFailure:
			logger.warning("Continuing without audio output; the next sound request will retry")

		await self.initialize_midi()

		if self._osc_bridge is not None:
			await self._osc_bridge.start()


	async def close (self) -> None:

		"""
		Stop all playback and release every resource.
		"""

		self.sequencer.stop_pattern()
		self.melody.close()
		self.midi.close()

		if self._osc_bridge is not None:
			await self._osc_bridge.stop()

		self.session.close()

		logger.info("Studio closed")


	async def run_until_stopped (self) -> None:

		"""
		Start, then wait for SIGINT/SIGTERM and shut down cleanly.
		"""

		await self.start()

		logger.info("Studio running. Press Ctrl+C to stop.")

		stop_event = asyncio.Event()
		loop = asyncio.get_running_loop()

		for sig in (signal.SIGINT, signal.SIGTERM):
			loop.add_signal_handler(sig, stop_event.set)

		try:
			await stop_event.wait()
		finally:
			await self.close()


	def run (self) -> None:

		"""
		Block and run the studio until interrupted (e.g. via Ctrl+C).
		"""

		try:
			asyncio.run(self.run_until_stopped())

		except KeyboardInterrupt:
			pass
