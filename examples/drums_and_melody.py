import asyncio
import logging

import studiocore

logging.basicConfig(level=logging.INFO)

BPM = 100

T = True
F = False

pattern = {
	"kick":    [T, F, F, F, T, F, F, F, T, F, F, F, T, F, F, F],
	"snare":   [F, F, F, F, T, F, F, F, F, F, F, F, T, F, F, F],
	"hihat":   [T, F, T, F, T, F, T, F, T, F, T, F, T, F, T, F],
	"openhat": [F, F, F, F, F, F, F, T, F, F, F, F, F, F, F, T],
}

# Two bars of a simple arpeggio over C major and A minor.
melody = [
	studiocore.NoteEvent("C", 4, 0.0, 0.5),
	studiocore.NoteEvent("E", 4, 0.5, 0.5),
	studiocore.NoteEvent("G", 4, 1.0, 0.5),
	studiocore.NoteEvent("C", 5, 1.5, 1.5, velocity=0.9),
	studiocore.NoteEvent("A", 3, 4.0, 0.5, instrument="flute"),
	studiocore.NoteEvent("C", 4, 4.5, 0.5, instrument="flute"),
	studiocore.NoteEvent("E", 4, 5.0, 0.5, instrument="flute"),
	studiocore.NoteEvent("A", 4, 5.5, 2.0, instrument="flute"),
]


async def main () -> None:

	studio = studiocore.Studio(bpm=BPM)

	studio.on_event("notification", lambda notification: logging.info(f"[{notification.variant}] {notification.title}"))

	await studio.initialize()
	studio.set_master_volume(80)

	studio.play_pattern(pattern)
	studio.play_melody(melody)

	await asyncio.sleep(8 * 60 / BPM)

	await studio.close()


if __name__ == "__main__":
	asyncio.run(main())
