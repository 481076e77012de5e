import asyncio
import logging
import time
import typing

import studiocore.constants
import studiocore.constants.gm_drums
import studiocore.event_emitter
import studiocore.trigger


logger = logging.getLogger(__name__)


Pattern = typing.Mapping[str, typing.Sequence[typing.Any]]


def step_duration (bpm: float) -> float:

	"""
	Seconds per step: one sixteenth note at ``bpm``.
	"""

	if bpm <= 0:
		raise ValueError("BPM must be positive")

	return 60.0 / bpm / studiocore.constants.STEPS_PER_BEAT


def validate_pattern (pattern: Pattern) -> typing.Dict[str, typing.Tuple[bool, ...]]:

	"""
	Check that every track has exactly 16 steps and normalise steps to booleans.

	Truthy values (``True``, ``1``) count as active steps.
	"""

	validated: typing.Dict[str, typing.Tuple[bool, ...]] = {}

	for track, steps in pattern.items():

		if len(steps) != studiocore.constants.STEPS_PER_PATTERN:
			raise ValueError(
				f"Track {track!r} has {len(steps)} steps, expected {studiocore.constants.STEPS_PER_PATTERN}"
			)

		validated[track] = tuple(bool(step) for step in steps)

	return validated


class StepSequencer:

	"""
	Loops a 16-step drum pattern at a tempo.

	At most one run exists at a time: ``play_pattern()`` cancels the previous
	run before starting the new one at step 0. Ticks are timed with
	``asyncio.sleep`` against absolute deadlines, so the tempo does not drift,
	but timing is only as accurate as the event loop (not sample accurate).
	"""

	def __init__ (
		self,
		trigger: studiocore.trigger.NoteTrigger,
		events: typing.Optional[studiocore.event_emitter.EventEmitter] = None,
		track_volumes: typing.Optional[typing.Mapping[str, float]] = None
	) -> None:

		self.trigger = trigger
		self.events = events if events is not None else studiocore.event_emitter.EventEmitter()
		self.track_volumes: typing.Dict[str, float] = dict(
			track_volumes if track_volumes is not None else studiocore.constants.gm_drums.TRACK_VOLUMES
		)

		self.task: typing.Optional[asyncio.Task] = None
		self.pattern: typing.Dict[str, typing.Tuple[bool, ...]] = {}
		self.bpm: float = 0.0
		self.step_duration: float = 0.0

		# Grows without bound; always read modulo STEPS_PER_PATTERN.
		self.step_count: int = 0

		self._hit_tasks: typing.Set[asyncio.Task] = set()


	@property
	def is_playing (self) -> bool:

		return self.task is not None


	@property
	def current_step (self) -> int:

		"""Index (0-15) of the step the next tick will play."""

		return self.step_count % studiocore.constants.STEPS_PER_PATTERN


	def play_pattern (self, pattern: Pattern, bpm: float) -> None:

		"""
		Start looping ``pattern`` at ``bpm`` from step 0, replacing any current run.

		Must be called from a running event loop.
		"""

		validated = validate_pattern(pattern)
		duration = step_duration(bpm)

		self.stop_pattern()

		self.pattern = validated
		self.bpm = bpm
		self.step_duration = duration

		task = asyncio.get_running_loop().create_task(self._run_loop())
		task.add_done_callback(self._on_run_done)
		self.task = task

		logger.info(f"Pattern started: {len(validated)} tracks at {bpm:.2f} BPM ({duration * 1000:.1f} ms/step)")


	def stop_pattern (self) -> None:

		"""
		Cancel the running loop and reset to step 0.
		"""

		if self.task is not None:
			self.task.cancel()
			self.task = None
			logger.info("Pattern stopped")

		self.step_count = 0


	def tick (self) -> int:

		"""
		Play one step and advance the counter. Returns the step index played.
		"""

		step = self.current_step

		for track, steps in self.pattern.items():
			if steps[step]:
				volume = self.track_volumes.get(track, studiocore.constants.gm_drums.DEFAULT_TRACK_VOLUME)
				self._fire(self.trigger.play_drum_sound(track, volume))

		self.step_count += 1

		try:
			self.events.emit_sync("step", step)
		except Exception:
			logger.exception("Step listener failed")

		return step


	async def _run_loop (self) -> None:

		next_tick_time = time.perf_counter()

		while True:

			self.tick()
			next_tick_time += self.step_duration

			sleep_time = next_tick_time - time.perf_counter()

			if sleep_time < -self.step_duration:
				# More than a whole step late (loop was blocked): resync instead of bursting.
				logger.warning(f"Sequencer fell {-sleep_time * 1000:.1f} ms behind, resyncing")
				next_tick_time = time.perf_counter()
				sleep_time = 0

			await asyncio.sleep(max(0.0, sleep_time))


	def _fire (self, coro: typing.Coroutine) -> None:

		"""
		Run a trigger call in the background, holding a reference until it finishes.
		"""

		task = asyncio.get_running_loop().create_task(coro)
		self._hit_tasks.add(task)
		task.add_done_callback(self._hit_tasks.discard)


	def _on_run_done (self, task: asyncio.Task) -> None:

		if self.task is task:
			self.task = None

		if not task.cancelled() and task.exception() is not None:
			logger.error(f"Sequencer loop stopped: {task.exception()!r}")
