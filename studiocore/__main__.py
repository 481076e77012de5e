import argparse
import asyncio
import logging

import studiocore.config
import studiocore.studio


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEMO_PATTERN = {
	"kick":    [True, False, False, False, True, False, False, False, True, False, False, False, True, False, False, False],
	"snare":   [False, False, False, False, True, False, False, False, False, False, False, False, True, False, False, False],
	"hihat":   [True, False, True, False, True, False, True, False, True, False, True, False, True, False, True, False],
	"openhat": [False, False, False, False, False, False, True, False, False, False, False, False, False, False, True, False],
}


def parse_args () -> argparse.Namespace:

	parser = argparse.ArgumentParser(prog="studiocore", description="Run the studio engine: MIDI input in, sound out.")
	parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file (default: config.yaml)")
	parser.add_argument("--demo", action="store_true", help="Loop a demo drum pattern while running")
	parser.add_argument("--bpm", type=float, default=None, help="Override the configured tempo")

	return parser.parse_args()


async def run (studio: studiocore.studio.Studio, demo: bool) -> None:

	if demo:
		def _start_demo () -> None:
			studio.play_pattern(DEMO_PATTERN)
		studio.session.on_initialized(_start_demo)

	await studio.run_until_stopped()


def main () -> None:

	"""
	Main entry point for the studio engine.
	"""

	args = parse_args()

	logger.info("studiocore starting...")

	config = studiocore.config.load_config(args.config)

	if args.bpm is not None:
		config.bpm = args.bpm

	studio = studiocore.studio.Studio.from_config(config)

	try:
		asyncio.run(run(studio, args.demo))
	except KeyboardInterrupt:
		pass


if __name__ == "__main__":
	main()
