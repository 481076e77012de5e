import asyncio
import logging
import typing

import studiocore.errors
import studiocore.event_emitter
import studiocore.notifications
import studiocore.synth


logger = logging.getLogger(__name__)


class AudioSession:

	"""
	Lifecycle of the shared audio output session.

	One instance is created per process and passed to every component that
	makes sound. ``initialize()`` is the only writer of ``is_initialized``.
	"""

	def __init__ (
		self,
		synth: studiocore.synth.SynthBackend,
		events: typing.Optional[studiocore.event_emitter.EventEmitter] = None
	) -> None:

		"""
		Parameters:
			synth: The sound-rendering collaborator this session drives.
			events: Shared emitter for ``"initialized"`` and ``"notification"``
				events. A private one is created when omitted.
		"""

		self.synth = synth
		self.events = events if events is not None else studiocore.event_emitter.EventEmitter()

		self._initialized: bool = False
		self._pending: typing.Optional[asyncio.Task] = None
		self.setup_count: int = 0


	@property
	def is_initialized (self) -> bool:

		return self._initialized


	def on_initialized (self, callback: typing.Callable[[], typing.Any]) -> typing.Callable[[], None]:

		"""
		Subscribe to the one-off "became initialized" notification.

		Callbacks fire in registration order. Returns an unsubscribe function.
		"""

		return self.events.on("initialized", callback)


	async def initialize (self) -> None:

		"""
		Set up the audio session once.

		Overlapping calls share the first caller's setup and return when it
		finishes. The setup runs in its own task, so cancelling one caller
		does not abort it for the others. If setup fails every waiter gets
		``InitializationFailure`` and the next call starts again from scratch.
		"""

		if self._initialized:
			return

		if self._pending is None:
			task = asyncio.get_running_loop().create_task(self._setup())
			task.add_done_callback(self._on_setup_done)
			self._pending = task

		await asyncio.shield(self._pending)


	async def _setup (self) -> None:

		try:
			self.setup_count += 1
			await self.synth.setup()

		except Exception as exc:
			self._release_pending()
			logger.error(f"Failed to initialize audio: {exc}")
			studiocore.notifications.notify(
				self.events,
				"Audio Initialization Failed",
				"Could not initialize audio system. Some features may not work.",
				variant="destructive"
			)
			raise studiocore.errors.InitializationFailure(str(exc)) from exc

		except BaseException:
			self._release_pending()
			raise

		self._initialized = True
		self._release_pending()

		logger.info("Audio session initialized")

		try:
			self.events.emit_sync("initialized")
		except Exception:
			logger.exception("Initialized listener failed")

		try:
			studiocore.notifications.notify(
				self.events,
				"Audio System Ready",
				"Audio output initialized successfully."
			)
		except Exception:
			logger.exception("Notification listener failed")


	def _release_pending (self) -> None:

		# close() may already have dropped this task and a newer setup may be pending.
		if self._pending is asyncio.current_task():
			self._pending = None


	def _on_setup_done (self, task: asyncio.Task) -> None:

		# Waiters consume the exception; mark it retrieved when there are none.
		if not task.cancelled():
			task.exception()


	async def resume (self) -> None:

		"""
		Resume the output session if the platform suspended it.
		"""

		await self.synth.resume_if_suspended()


	def close (self) -> None:

		"""
		Tear the session down: cancel an in-flight setup, silence everything
		and release the backend.
		"""

		if self._pending is not None:
			self._pending.cancel()
			self._pending = None

		if not self._initialized:
			return

		self.synth.stop_all()
		self.synth.close()
		self._initialized = False

		logger.info("Audio session closed")
