import logging

import studiocore

logging.basicConfig(level=logging.INFO)

# Plays whatever a connected MIDI keyboard sends through the default output.
# Channel 10 goes to the drum kit; the other channels map to instruments.
studio = studiocore.Studio()

studio.update_settings(velocity_sensitivity=80, note_range=(36, 96))

studio.on_event("devices", lambda devices: logging.info(f"Devices: {[device.name for device in devices]}"))
studio.on_event("note_on", lambda last: logging.info(f"Note {last.note} vel {last.velocity} ch {last.channel + 1}"))

if __name__ == "__main__":
	studio.run()
