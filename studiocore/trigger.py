import asyncio
import logging
import typing

import studiocore.constants
import studiocore.constants.instruments
import studiocore.pitch
import studiocore.session


logger = logging.getLogger(__name__)


PitchType = typing.Union[str, int]


class NoteTrigger:

	"""
	Turns symbolic note and drum requests into synthesis calls.

	Trigger calls are fire-and-forget: any failure (session setup or
	rendering) is logged and counted, never raised, so a bad note cannot
	stop a sequencer or drop a MIDI connection.
	"""

	def __init__ (self, session: studiocore.session.AudioSession) -> None:

		self.session = session
		self.render_failures: int = 0


	async def play_note (
		self,
		pitch: PitchType,
		octave: int = 4,
		duration: float = studiocore.constants.DEFAULT_NOTE_SECONDS,
		instrument: str = studiocore.constants.instruments.DEFAULT_INSTRUMENT,
		velocity: float = studiocore.constants.DEFAULT_NOTE_VELOCITY
	) -> None:

		"""
		Play one note.

		Parameters:
			pitch: A pitch-class name (``"C#"``, ``"Bb"``) or a MIDI note number.
				A note number carries its own octave and ``octave`` is ignored.
			octave: Octave of a named pitch (C4 = middle C).
			duration: Length in seconds.
			instrument: Instrument id passed to the synthesis backend.
			velocity: Loudness in [0, 1].
		"""

		try:
			await self._prepare()

			if isinstance(pitch, int):
				pitch, octave = studiocore.pitch.midi_to_name(pitch)

			frequency = studiocore.pitch.note_frequency(pitch, octave)

			logger.debug(f"Playing {instrument}: {pitch}{octave} ({frequency:.2f} Hz) for {duration:.3f}s")

			self.session.synth.render_note(frequency, duration, instrument, velocity)

		except asyncio.CancelledError:
			raise

		except Exception:
			self.render_failures += 1
			logger.exception(f"Failed to play note {pitch}{octave}")


	async def play_drum_sound (self, drum_id: str, volume: float = studiocore.constants.DEFAULT_DRUM_VOLUME) -> None:

		"""
		Play one drum hit by id (``"kick"``, ``"snare"``, ``"hihat"``...).
		"""

		try:
			await self._prepare()

			self.session.synth.render_drum(drum_id, volume)

		except asyncio.CancelledError:
			raise

		except Exception:
			self.render_failures += 1
			logger.exception(f"Failed to play drum sound {drum_id!r}")


	async def play_chord (
		self,
		notes: typing.Iterable[typing.Tuple[PitchType, int, float]],
		instrument: str = studiocore.constants.instruments.DEFAULT_INSTRUMENT
	) -> None:

		"""
		Play several ``(pitch, octave, duration)`` notes at the same moment.
		"""

		await asyncio.gather(*(
			self.play_note(pitch, octave, duration, instrument)
			for pitch, octave, duration in notes
		))


	def set_master_volume (self, percent: float) -> None:

		"""
		Set the output level from a 0-100 percentage.
		"""

		level = max(0.0, min(100.0, percent)) / 100

		try:
			self.session.synth.set_master_volume(level)
		except Exception:
			logger.exception("Failed to set master volume")


	async def _prepare (self) -> None:

		"""
		Make sure the session is set up, then resume it (required on every call).
		"""

		if not self.session.is_initialized:
			await self.session.initialize()

		await self.session.resume()
