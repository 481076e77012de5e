"""OSC bridge for remote control and state broadcasting.

Enable it with ``studio.osc()`` (or ``osc.enabled`` in the config) before
``studio.start()``. The bridge listens on a UDP port (default 9000) for control
messages and sends state updates to a target host/port (default 127.0.0.1:9001).

Built-in Receive Handlers
─────────────────────────
- ``/pattern/stop``: Stop the step sequencer
- ``/melody/stop``: Stop the melody
- ``/volume <float>``: Master volume in percent
- ``/midi/refresh``: Rebuild the MIDI device list
- ``/drum <id> [volume]``: Play one drum hit
- ``/note <pitch> [octave] [duration]``: Play one note

Built-in Send Events
────────────────────
- ``/session/initialized 1``: Audio session became ready
- ``/sequencer/step <int>``: Step sequencer tick
- ``/midi/note_on <note> <velocity> <channel>``
- ``/midi/note_off <note> <channel>``
- ``/midi/devices <count>``
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

if typing.TYPE_CHECKING:
	from studiocore.studio import Studio


logger = logging.getLogger(__name__)


class OscBridge:

	"""Async OSC server/client bridging a studio to remote controllers."""

	def __init__ (
		self,
		studio: "Studio",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._studio = studio
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()
		self._unsubscribers: typing.List[typing.Callable[[], None]] = []
		self._tasks: typing.Set[asyncio.Task] = set()

		self._dispatcher.map("/pattern/stop", self._handle_pattern_stop)
		self._dispatcher.map("/melody/stop", self._handle_melody_stop)
		self._dispatcher.map("/volume", self._handle_volume)
		self._dispatcher.map("/midi/refresh", self._handle_midi_refresh)
		self._dispatcher.map("/drum", self._handle_drum)
		self._dispatcher.map("/note", self._handle_note)


	async def start (self) -> None:

		"""Start the OSC server and client and begin broadcasting studio state."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		events = self._studio.events
		self._unsubscribers = [
			events.on("initialized", lambda: self.send("/session/initialized", 1)),
			events.on("step", lambda step: self.send("/sequencer/step", step)),
			events.on("note_on", lambda last: self.send("/midi/note_on", last.note, last.velocity, last.channel)),
			events.on("note_off", lambda note, channel: self.send("/midi/note_off", note, channel)),
			events.on("devices", lambda devices: self.send("/midi/devices", len(devices))),
		]

		logger.info(f"OSC listening on :{self._receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server and stop broadcasting."""

		for unsubscribe in self._unsubscribers:
			unsubscribe()

		self._unsubscribers = []

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")


	@property
	def receive_port (self) -> typing.Optional[int]:

		"""The bound receive port (useful when started with port 0)."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, args)
			except Exception as e:
				logger.warning(f"OSC send error: {e}")


	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register a custom OSC handler."""

		self._dispatcher.map(address, handler)


	# Handlers

	def _handle_pattern_stop (self, address: str, *args: typing.Any) -> None:
		self._studio.stop_pattern()

	def _handle_melody_stop (self, address: str, *args: typing.Any) -> None:
		self._studio.stop_melody()

	def _handle_volume (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._studio.set_master_volume(float(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC volume argument: {args[0]}")

	def _handle_midi_refresh (self, address: str, *args: typing.Any) -> None:
		self._studio.refresh_devices()

	def _handle_drum (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			volume = float(args[1]) if len(args) > 1 else 0.5
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC drum volume: {args[1]}")
			return
		self._spawn(self._studio.play_drum_sound(str(args[0]), volume))

	def _handle_note (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			octave = int(args[1]) if len(args) > 1 else 4
			duration = float(args[2]) if len(args) > 2 else 0.5
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC note arguments: {args}")
			return
		self._spawn(self._studio.play_note(str(args[0]), octave, duration))

	def _spawn (self, coro: typing.Coroutine) -> None:
		task = asyncio.get_running_loop().create_task(coro)
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
