"""
studiocore - the real-time note scheduling and MIDI input engine of a music workstation.

It turns symbolic musical intent into timed sound-trigger calls:

- **Step sequencer.** Loops a 16-step drum pattern at any tempo. Starting
  a new pattern cancels the old one, so two runs never overlap.
- **Melody scheduler.** Plays a list of beat-timed notes once, with
  exhaustive cancellation on restart, stop and teardown.
- **Live MIDI input.** Mirrors the available MIDI ports, follows hot-plug
  changes, decodes note-on/off, tracks the active notes and maps each
  channel to an instrument (channel 10 is drums).
- **One shared audio session.** Initialized once, even under overlapping
  calls, and retried from scratch after a failure. Every sound request
  waits for it and resumes it first.

The engine never renders audio itself. Sound requests go to a synthesis
backend; the bundled ``MidiOutSynth`` plays through any General MIDI output
port (a hardware synth or a software instrument such as FluidSynth).
Timing is asyncio based and not sample accurate.

Minimal example:

    ```python
    import asyncio
    import studiocore

    studio = studiocore.Studio(bpm=120)

    async def main ():
        await studio.initialize()
        studio.play_pattern({
            "kick":  [1, 0, 0, 0] * 4,
            "snare": [0, 0, 0, 0, 1, 0, 0, 0] * 2,
            "hihat": [1, 0] * 8,
        })
        studio.play_melody([
            studiocore.NoteEvent("C", 4, 0, 0.5),
            studiocore.NoteEvent("E", 4, 0.5, 0.5),
            studiocore.NoteEvent("G", 4, 1, 0.5),
            studiocore.NoteEvent("C", 5, 1.5, 1),
        ])
        await asyncio.sleep(4)
        await studio.close()

    asyncio.run(main())
    ```

Package-level exports: ``Studio``, ``NoteEvent``, ``MidiSettings``, ``load_config``.
"""

import studiocore.config
import studiocore.melody
import studiocore.midi_input
import studiocore.studio


Studio = studiocore.studio.Studio
NoteEvent = studiocore.melody.NoteEvent
MidiSettings = studiocore.midi_input.MidiSettings
load_config = studiocore.config.load_config
