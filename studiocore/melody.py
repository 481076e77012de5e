import asyncio
import dataclasses
import itertools
import logging
import typing

import studiocore.constants
import studiocore.constants.instruments
import studiocore.pitch
import studiocore.trigger


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class NoteEvent:

	"""
	One note of a melody, timed in beats from the start of the melody.
	"""

	pitch: str
	octave: int
	start_offset_beats: float
	duration_beats: float
	instrument: str = studiocore.constants.instruments.DEFAULT_INSTRUMENT
	velocity: float = studiocore.constants.DEFAULT_NOTE_VELOCITY


	def __post_init__ (self) -> None:

		if studiocore.pitch.pitch_class(self.pitch) is None:
			raise ValueError(f"Unknown note name: {self.pitch!r}")

		if self.start_offset_beats < 0:
			raise ValueError("Note start offset cannot be negative")

		if self.duration_beats <= 0:
			raise ValueError("Note duration must be positive")

		if not 0.0 <= self.velocity <= 1.0:
			raise ValueError("Note velocity must be between 0 and 1")


class MelodyScheduler:

	"""
	Plays a list of notes once, each at its own offset.

	Every note gets a ``loop.call_later`` timer. A new ``play_melody()`` call,
	``stop_melody()`` or ``close()`` cancels all outstanding timers, so no
	stray note from an earlier melody can fire later.
	"""

	def __init__ (self, trigger: studiocore.trigger.NoteTrigger) -> None:

		self.trigger = trigger

		self._timers: typing.Dict[int, asyncio.TimerHandle] = {}
		self._timer_ids = itertools.count()
		self._note_tasks: typing.Set[asyncio.Task] = set()


	@property
	def is_playing (self) -> bool:

		return bool(self._timers)


	@property
	def pending_count (self) -> int:

		return len(self._timers)


	def play_melody (self, notes: typing.Iterable[NoteEvent], bpm: float) -> None:

		"""
		Schedule ``notes`` at ``bpm``, replacing any melody still pending.

		Must be called from a running event loop.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self._cancel_timers()

		beat_duration = 60.0 / bpm
		loop = asyncio.get_running_loop()
		count = 0

		for note in notes:
			timer_id = next(self._timer_ids)
			self._timers[timer_id] = loop.call_later(
				note.start_offset_beats * beat_duration,
				self._fire,
				timer_id,
				note,
				beat_duration
			)
			count += 1

		logger.info(f"Melody scheduled: {count} notes at {bpm:.2f} BPM")


	def stop_melody (self) -> None:

		"""
		Cancel every pending note and silence anything still sounding.
		"""

		self._cancel_timers()

		try:
			self.trigger.session.synth.stop_all()
		except Exception:
			logger.exception("Failed to stop sounding notes")

		logger.info("Melody stopped")


	def close (self) -> None:

		"""
		Teardown: cancel pending timers and in-flight trigger calls.
		"""

		self._cancel_timers()

		for task in list(self._note_tasks):
			task.cancel()

		self._note_tasks.clear()


	def _cancel_timers (self) -> None:

		for handle in self._timers.values():
			handle.cancel()

		self._timers.clear()


	def _fire (self, timer_id: int, note: NoteEvent, beat_duration: float) -> None:

		self._timers.pop(timer_id, None)

		task = asyncio.get_running_loop().create_task(
			self.trigger.play_note(
				note.pitch,
				note.octave,
				note.duration_beats * beat_duration,
				note.instrument,
				note.velocity
			)
		)

		self._note_tasks.add(task)
		task.add_done_callback(self._note_tasks.discard)
