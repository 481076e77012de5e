"""Live MIDI input: device discovery, message decoding and note state.

``MidiDeviceManager`` asks a platform provider for device access, mirrors the
available ports, listens to every input port and turns note-on messages into
``NoteTrigger.play_note()`` calls. The bundled provider wraps mido; mido has no
hot-plug notification, so port changes are found by polling.

Message decoding works on raw bytes, ``(status, data1, data2)``:

- ``0x90`` with velocity > 0 - note-on: plays the note for a fixed duration
- ``0x80``, or ``0x90`` with velocity 0 - note-off: clears active-note state only
- ``0xB0`` control change, ``0xC0`` program change - logged only
"""

import asyncio
import dataclasses
import logging
import typing

import mido

import studiocore.constants
import studiocore.constants.instruments
import studiocore.errors
import studiocore.event_emitter
import studiocore.midi_utils
import studiocore.notifications
import studiocore.pitch
import studiocore.trigger


logger = logging.getLogger(__name__)


NOTE_OFF = 0x80
NOTE_ON = 0x90
CONTROL_CHANGE = 0xB0
PROGRAM_CHANGE = 0xC0

CHANNEL_MODES = ("omni", "multi", "single")


@dataclasses.dataclass(frozen=True)
class MidiDevice:

	"""
	Read-only record of one MIDI port as reported by the platform.
	"""

	id: str
	name: str
	manufacturer: str
	connection_kind: str
	state: str = "connected"


@dataclasses.dataclass(frozen=True)
class LastNote:

	note: int
	velocity: int
	channel: int


@dataclasses.dataclass(frozen=True)
class DecodedMessage:

	message_type: int
	channel: int
	data1: int
	data2: int


@dataclasses.dataclass
class MidiSettings:

	"""
	User-facing MIDI input settings.

	``input_device`` is ``"all"`` or a device id. ``active_channel`` is 1-based
	and only used in ``single`` channel mode. ``note_range`` is inclusive.
	"""

	input_device: str = "all"
	velocity_sensitivity: float = 100
	channel_mode: str = "omni"
	active_channel: int = 1
	note_range: typing.Tuple[int, int] = (21, 108)
	sustain_pedal: bool = True
	pitch_bend: bool = True
	modulation: bool = True
	auto_connect: bool = True


SETTINGS_FIELDS = frozenset(field.name for field in dataclasses.fields(MidiSettings))


def decode_message (data: typing.Sequence[int]) -> typing.Optional[DecodedMessage]:

	"""
	Split raw MIDI bytes into type, channel and the two data bytes.

	Missing data bytes read as 0. Returns ``None`` for an empty message.
	"""

	if not data:
		return None

	status = data[0]
	data1 = data[1] if len(data) > 1 else 0
	data2 = data[2] if len(data) > 2 else 0

	return DecodedMessage(
		message_type = status & 0xF0,
		channel = status & 0x0F,
		data1 = data1,
		data2 = data2
	)


def normalize_velocity (velocity: int, sensitivity: float = 100) -> float:

	"""
	Map a MIDI velocity (0-127) to [0, 1], scaled by a sensitivity percentage.
	"""

	velocity = max(studiocore.constants.MIN_MIDI_VELOCITY, min(studiocore.constants.MAX_MIDI_VELOCITY, velocity))
	level = velocity / studiocore.constants.MAX_MIDI_VELOCITY * sensitivity / 100

	return max(0.0, min(1.0, level))


class ChannelInstrumentMap (typing.Mapping[int, str]):

	"""
	Read-only mapping of 0-indexed MIDI channel to instrument id.

	Channels without an entry resolve to the fallback instrument.
	"""

	def __init__ (
		self,
		mapping: typing.Optional[typing.Mapping[int, str]] = None,
		fallback: str = studiocore.constants.instruments.DEFAULT_INSTRUMENT
	) -> None:

		self._mapping: typing.Dict[int, str] = dict(
			mapping if mapping is not None else studiocore.constants.instruments.DEFAULT_CHANNEL_INSTRUMENTS
		)
		self.fallback = fallback


	def __getitem__ (self, channel: int) -> str:

		return self._mapping[channel]


	def __iter__ (self) -> typing.Iterator[int]:

		return iter(self._mapping)


	def __len__ (self) -> int:

		return len(self._mapping)


	def resolve (self, channel: int) -> str:

		return self._mapping.get(channel, self.fallback)


def _query_ports () -> typing.Tuple[typing.List[str], typing.List[str]]:

	"""
	Ask mido for the current input and output port names.

	A missing backend means the platform has no MIDI support at all; any other
	backend error is treated as refused access.
	"""

	try:
		return list(mido.get_input_names()), list(mido.get_output_names())

	except ImportError as e:
		raise studiocore.errors.UnsupportedCapability(f"No MIDI backend available: {e}") from e

	except Exception as e:
		raise studiocore.errors.AccessDenied(f"MIDI system refused access: {e}") from e


class MidoAccess:

	"""
	Device access handle backed by mido.

	Exposes the current ports and a polling hot-plug watcher that calls every
	``on_state_change`` callback (on the event loop) when the set of port names
	changes.
	"""

	def __init__ (self, input_names: typing.Sequence[str], output_names: typing.Sequence[str], poll_interval: float = 1.0) -> None:

		self.input_names: typing.List[str] = list(input_names)
		self.output_names: typing.List[str] = list(output_names)
		self.poll_interval = poll_interval

		self._state_listeners: typing.List[typing.Callable[[], typing.Any]] = []
		self._watch_task: typing.Optional[asyncio.Task] = None


	@property
	def inputs (self) -> typing.Tuple[MidiDevice, ...]:

		return tuple(
			MidiDevice(id=name, name=name or "Unknown Input", manufacturer="Unknown", connection_kind="input")
			for name in self.input_names
		)


	@property
	def outputs (self) -> typing.Tuple[MidiDevice, ...]:

		return tuple(
			MidiDevice(id=name, name=name or "Unknown Output", manufacturer="Unknown", connection_kind="output")
			for name in self.output_names
		)


	def open_input (self, device_id: str, callback: typing.Callable[[mido.Message], None]) -> typing.Optional[typing.Any]:

		return studiocore.midi_utils.open_input_device(device_id, callback)


	def on_state_change (self, callback: typing.Callable[[], typing.Any]) -> None:

		"""
		Register a hot-plug callback and start polling (needs a running loop).
		"""

		self._state_listeners.append(callback)

		if self._watch_task is None:
			self._watch_task = asyncio.get_running_loop().create_task(self._watch())


	async def poll (self) -> bool:

		"""
		Re-read the port lists once. Returns True (and notifies) if they changed.
		"""

		loop = asyncio.get_running_loop()
		input_names, output_names = await loop.run_in_executor(None, _query_ports)

		if input_names == self.input_names and output_names == self.output_names:
			return False

		logger.info(f"MIDI ports changed: inputs {input_names}, outputs {output_names}")

		self.input_names = input_names
		self.output_names = output_names

		for callback in list(self._state_listeners):
			callback()

		return True


	async def _watch (self) -> None:

		while True:

			await asyncio.sleep(self.poll_interval)

			try:
				await self.poll()
			except studiocore.errors.StudioError as e:
				logger.warning(f"MIDI port poll failed: {e}")


	def close (self) -> None:

		if self._watch_task is not None:
			self._watch_task.cancel()
			self._watch_task = None

		self._state_listeners = []


class MidoAccessProvider:

	"""
	Platform capability: grants a ``MidoAccess`` handle or raises.
	"""

	def __init__ (self, poll_interval: float = 1.0) -> None:

		self.poll_interval = poll_interval


	async def request_access (self) -> MidoAccess:

		"""
		Raises ``UnsupportedCapability`` or ``AccessDenied``.
		"""

		loop = asyncio.get_running_loop()
		input_names, output_names = await loop.run_in_executor(None, _query_ports)

		return MidoAccess(input_names, output_names, poll_interval=self.poll_interval)


class MidiDeviceManager:

	"""
	Tracks external MIDI hardware and plays what it sends.

	Observable state: ``connected_devices``, ``active_notes``, ``last_note``,
	``is_supported`` and ``is_connected``. Changes are also broadcast on
	``events`` as ``"devices"``, ``"note_on"``, ``"note_off"``,
	``"control_change"`` and ``"program_change"``.
	"""

	def __init__ (
		self,
		trigger: studiocore.trigger.NoteTrigger,
		provider: typing.Optional[typing.Any] = None,
		settings: typing.Optional[MidiSettings] = None,
		channel_map: typing.Optional[ChannelInstrumentMap] = None,
		events: typing.Optional[studiocore.event_emitter.EventEmitter] = None,
		sustained_duration: float = studiocore.constants.SUSTAINED_NOTE_SECONDS
	) -> None:

		"""
		Parameters:
			trigger: Where decoded notes are sent.
			provider: Platform capability with an async ``request_access()``.
				Defaults to ``MidoAccessProvider``.
			settings: Initial settings (defaults when omitted).
			channel_map: Channel to instrument mapping (General-MIDI-like default).
			events: Shared emitter. Defaults to the session's emitter so
				notifications reach the same listeners.
			sustained_duration: Seconds each live note sounds for. Note-off does
				not cut notes short.
		"""

		self.trigger = trigger
		self.provider = provider if provider is not None else MidoAccessProvider()
		self.settings = settings if settings is not None else MidiSettings()
		self.channel_map = channel_map if channel_map is not None else ChannelInstrumentMap()
		self.events = events if events is not None else trigger.session.events
		self.sustained_duration = sustained_duration

		self.access: typing.Optional[typing.Any] = None
		self.is_supported: bool = False
		self.is_connected: bool = False
		self.last_note: typing.Optional[LastNote] = None

		self._devices: typing.Tuple[MidiDevice, ...] = ()
		self._active_notes: typing.Set[int] = set()
		self._ports: typing.Dict[str, typing.Any] = {}
		self._note_tasks: typing.Set[asyncio.Task] = set()
		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None
		self._unsupported_reported: bool = False


	@property
	def connected_devices (self) -> typing.Tuple[MidiDevice, ...]:

		return self._devices


	@property
	def active_notes (self) -> typing.FrozenSet[int]:

		return frozenset(self._active_notes)


	@property
	def listening_to (self) -> typing.List[str]:

		"""Ids of the input ports with an open message handler."""

		return list(self._ports)


	async def initialize_midi (self) -> bool:

		"""
		Request device access, mirror the devices and start listening.

		Returns True on success. Failures are reported with a notification and
		not raised; calling again retries.
		"""

		self._loop = asyncio.get_running_loop()

		try:
			access = await self.provider.request_access()

		except studiocore.errors.UnsupportedCapability as e:
			self.is_supported = False
			self.is_connected = False
			logger.warning(f"MIDI not supported: {e}")

			if not self._unsupported_reported:
				self._unsupported_reported = True
				studiocore.notifications.notify(
					self.events,
					"MIDI Not Supported",
					"No MIDI backend is available on this system.",
					variant="destructive"
				)
			return False

		except studiocore.errors.AccessDenied as e:
			self.is_supported = True
			self.is_connected = False
			logger.error(f"MIDI access denied: {e}")
			studiocore.notifications.notify(
				self.events,
				"MIDI Access Denied",
				"Permission to use MIDI devices was refused.",
				variant="destructive"
			)
			return False

		if self.access is not None and self.access is not access:
			self.close()

		self.access = access
		self.is_supported = True
		self.is_connected = True

		logger.info("MIDI access granted")

		access.on_state_change(self._on_state_change)
		self.refresh_devices(subscribe=True)

		return True


	def refresh_devices (self, subscribe: typing.Optional[bool] = None) -> None:

		"""
		Rebuild the device list from the platform's current set.

		Input subscriptions are brought in line with it too: vanished ports
		are closed, and new ports are opened when ``subscribe`` is True (the
		default follows ``settings.auto_connect``).
		"""

		if self.access is None:
			return

		self._devices = tuple(self.access.inputs) + tuple(self.access.outputs)

		logger.info(f"Connected MIDI devices: {[device.name for device in self._devices]}")

		self._sync_ports(self.settings.auto_connect if subscribe is None else subscribe)

		self.events.emit_sync("devices", self._devices)


	def update_settings (self, partial: typing.Optional[typing.Mapping[str, typing.Any]] = None, **fields: typing.Any) -> MidiSettings:

		"""
		Merge the given fields into the current settings.

		Fields that are not given keep their value, so ``update_settings({})``
		changes nothing; use ``reset_settings()`` to restore defaults. A
		one-element list for ``velocity_sensitivity`` (a slider value) is
		unwrapped. Unknown or invalid fields raise ``ValueError``.
		"""

		changes: typing.Dict[str, typing.Any] = dict(partial or {})
		changes.update(fields)

		unknown = set(changes) - SETTINGS_FIELDS
		if unknown:
			raise ValueError(f"Unknown MIDI settings: {sorted(unknown)}")

		if "velocity_sensitivity" in changes:
			value = changes["velocity_sensitivity"]
			if isinstance(value, (list, tuple)):
				if len(value) != 1:
					raise ValueError("Velocity sensitivity must be a number or a one-element sequence")
				value = value[0]
			changes["velocity_sensitivity"] = value

		if "channel_mode" in changes and changes["channel_mode"] not in CHANNEL_MODES:
			raise ValueError(f"Channel mode must be one of {CHANNEL_MODES}")

		if "active_channel" in changes and not 1 <= changes["active_channel"] <= studiocore.constants.MIDI_CHANNELS:
			raise ValueError("Active channel must be between 1 and 16")

		if "note_range" in changes:
			low, high = changes["note_range"]
			if not 0 <= low <= high <= 127:
				raise ValueError("Note range must satisfy 0 <= min <= max <= 127")
			changes["note_range"] = (low, high)

		self.settings = dataclasses.replace(self.settings, **changes)

		if changes:
			logger.info(f"MIDI settings updated: {sorted(changes)}")

		if "input_device" in changes and self.access is not None:
			self._sync_ports(True)

		return self.settings


	def reset_settings (self) -> MidiSettings:

		previous_input = self.settings.input_device
		self.settings = MidiSettings()

		logger.info("MIDI settings reset to defaults")

		if self.settings.input_device != previous_input and self.access is not None:
			self._sync_ports(True)

		return self.settings


	def get_channel_instrument (self, channel: int) -> str:

		return self.channel_map.resolve(channel)


	def handle_message (self, data: typing.Sequence[int]) -> None:

		"""
		Decode one raw MIDI message and act on it.
		"""

		decoded = decode_message(data)

		if decoded is None:
			return

		if decoded.message_type == NOTE_ON and decoded.data2 > 0:

			if self._accepts_channel(decoded.channel):
				self._note_on(decoded.data1, decoded.data2, decoded.channel)

		elif decoded.message_type in (NOTE_ON, NOTE_OFF):
			# Note-offs pass every filter: a held note is always released.
			self._note_off(decoded.data1, decoded.channel)

		elif decoded.message_type == CONTROL_CHANGE:
			logger.info(f"MIDI CC: Channel {decoded.channel + 1}, Controller {decoded.data1}, Value {decoded.data2}")
			self.events.emit_sync("control_change", decoded.channel, decoded.data1, decoded.data2)

		elif decoded.message_type == PROGRAM_CHANGE:
			logger.info(f"MIDI Program Change: Channel {decoded.channel + 1}, Program {decoded.data1}")
			self.events.emit_sync("program_change", decoded.channel, decoded.data1)

		else:
			logger.debug(f"Ignoring MIDI message type 0x{decoded.message_type:02X}")


	def close (self) -> None:

		"""
		Close every input port, stop hot-plug watching and cancel pending notes.
		"""

		for device_id in list(self._ports):
			self._close_port(device_id)

		if self.access is not None:
			self.access.close()
			self.access = None

		for task in list(self._note_tasks):
			task.cancel()

		self._note_tasks.clear()
		self.is_connected = False


	def _note_on (self, note: int, velocity: int, channel: int) -> None:

		low, high = self.settings.note_range

		if not low <= note <= high:
			logger.debug(f"Note {note} outside range {low}-{high}, ignored")
			return

		name, octave = studiocore.pitch.midi_to_name(note)
		level = normalize_velocity(velocity, self.settings.velocity_sensitivity)
		instrument = self.get_channel_instrument(channel)

		self._active_notes.add(note)
		self.last_note = LastNote(note=note, velocity=velocity, channel=channel)

		logger.info(f"MIDI Note On: {name}{octave} ({note}) vel:{velocity} ch:{channel + 1}")

		self._fire(self.trigger.play_note(name, octave, self.sustained_duration, instrument, level))

		self.events.emit_sync("note_on", self.last_note)


	def _note_off (self, note: int, channel: int) -> None:

		# No stop call: notes always sound for sustained_duration.
		self._active_notes.discard(note)

		logger.debug(f"MIDI Note Off: {note} ch:{channel + 1}")

		self.events.emit_sync("note_off", note, channel)


	def _accepts_channel (self, channel: int) -> bool:

		if self.settings.channel_mode == "single":
			return channel == self.settings.active_channel - 1

		return True


	def _wants_input (self, device_id: str) -> bool:

		return self.settings.input_device in ("all", device_id)


	def _sync_ports (self, subscribe: bool) -> None:

		"""
		Close ports that vanished or are deselected; open wanted ones if ``subscribe``.
		"""

		if self.access is None:
			return

		available = {device.id for device in self.access.inputs}

		for device_id in list(self._ports):
			if device_id not in available or not self._wants_input(device_id):
				self._close_port(device_id)

		if not subscribe:
			return

		for device in self.access.inputs:

			if device.id in self._ports or not self._wants_input(device.id):
				continue

			port = self.access.open_input(device.id, self._make_port_callback(device.id))

			if port is not None:
				self._ports[device.id] = port


	def _close_port (self, device_id: str) -> None:

		port = self._ports.pop(device_id)

		try:
			port.close()
		except Exception as e:
			logger.warning(f"Failed to close MIDI input '{device_id}': {e}")

		logger.info(f"Stopped listening to MIDI input: {device_id}")


	def _make_port_callback (self, device_id: str) -> typing.Callable[[mido.Message], None]:

		"""
		Build the callback for one port. It runs on mido's thread and hands the
		message to the event loop.
		"""

		loop = self._loop

		def callback (message: mido.Message) -> None:
			if loop is None or loop.is_closed():
				return
			loop.call_soon_threadsafe(self._on_port_message, device_id, message)

		return callback


	def _on_port_message (self, device_id: str, message: mido.Message) -> None:

		# A message can still be queued after its port was closed.
		if device_id not in self._ports:
			return

		try:
			self.handle_message(message.bytes())
		except Exception:
			logger.exception(f"Failed to handle MIDI message from '{device_id}'")


	def _on_state_change (self) -> None:

		logger.info("MIDI device state changed")

		self.refresh_devices()


	def _fire (self, coro: typing.Coroutine) -> None:

		task = asyncio.get_running_loop().create_task(coro)
		self._note_tasks.add(task)
		task.add_done_callback(self._note_tasks.discard)
