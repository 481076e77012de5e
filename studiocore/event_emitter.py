import asyncio
import typing


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Ordered observer registry supporting sync and async callbacks.

	Listeners for an event are called in the order they were registered.
	A failing listener is not isolated here; callers that need isolation
	wrap their own callbacks.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> typing.Callable[[], None]:

		"""
		Register a callback for an event name.

		Returns a zero-argument function that unregisters the callback, so
		observers can keep a single handle for teardown.
		"""

		self._listeners.setdefault(event_name, []).append(callback)

		def unsubscribe () -> None:
			if self.has_listener(event_name, callback):
				self.off(event_name, callback)

		return unsubscribe


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if not self.has_listener(event_name, callback):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def has_listener (self, event_name: str, callback: CallbackType) -> bool:

		return callback in self._listeners.get(event_name, [])


	def listener_count (self, event_name: str) -> int:

		return len(self._listeners.get(event_name, []))


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and call non-async listeners immediately.

		Async listeners are scheduled as tasks on the running loop; emitting
		from outside a loop with async listeners registered raises
		``ValueError``.
		"""

		# Copy so listeners may unsubscribe themselves while being called.
		for callback in list(self._listeners.get(event_name, [])):

			if asyncio.iscoroutinefunction(callback):
				try:
					loop = asyncio.get_running_loop()
				except RuntimeError:
					raise ValueError(f"Async listener for {event_name!r} needs a running event loop") from None
				loop.create_task(callback(*args, **kwargs))
				continue

			callback(*args, **kwargs)


	async def emit_async (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and await async listeners.
		"""

		tasks: typing.List[typing.Awaitable[typing.Any]] = []

		for callback in list(self._listeners.get(event_name, [])):

			if asyncio.iscoroutinefunction(callback):
				tasks.append(callback(*args, **kwargs))

			else:
				callback(*args, **kwargs)

		if tasks:
			await asyncio.gather(*tasks)
