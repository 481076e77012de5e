"""Step sequencer jitter benchmark.

Loops a drum pattern for a number of bars and measures how far each step
tick lands from its ideal time (start + n * step duration).

Usage:
    python benchmarks/step_jitter.py [--bpm BPM] [--bars N] [--device DEVICE_NAME]

Options:
    --bpm BPM           Tempo in BPM (default: 120)
    --bars N            Number of 16-step bars to measure (default: 16)
    --device NAME       MIDI output device name (default: auto-select)
"""

import argparse
import asyncio
import logging
import statistics
import time
import typing

# Suppress engine logging during benchmark; we want clean output.
logging.basicConfig(level=logging.ERROR)

import studiocore.constants
import studiocore.step_sequencer
import studiocore.studio


PATTERN = {
	"kick":  [True, False, False, False] * 4,
	"hihat": [True, False] * 8,
}


def _run_benchmark (bpm: float, bars: int, device_name: typing.Optional[str]) -> typing.List[float]:

	"""Run the pattern for *bars* bars and return per-step lateness (seconds)."""

	steps = bars * studiocore.constants.STEPS_PER_PATTERN
	step_seconds = studiocore.step_sequencer.step_duration(bpm)
	tick_times: typing.List[float] = []

	async def _run () -> None:

		studio = studiocore.studio.Studio(output_device=device_name, bpm=bpm)
		await studio.initialize()

		done = asyncio.Event()

		def _on_step (step: int) -> None:
			tick_times.append(time.perf_counter())
			if len(tick_times) >= steps:
				done.set()

		studio.on_event("step", _on_step)
		studio.play_pattern(PATTERN)

		await asyncio.wait_for(done.wait(), timeout=steps * step_seconds + 2.0)
		await studio.close()

	asyncio.run(_run())

	start = tick_times[0]

	return [t - (start + n * step_seconds) for n, t in enumerate(tick_times[:steps])]


def _print_report (jitter: typing.List[float], bpm: float, bars: int) -> None:

	if not jitter:
		print("No jitter data collected.")
		return

	ms = [j * 1000 for j in jitter]

	mean_ms   = statistics.mean(ms)
	stdev_ms  = statistics.stdev(ms) if len(ms) > 1 else 0.0
	p95_ms    = sorted(ms)[int(len(ms) * 0.95)]
	max_ms    = max(ms)
	drift_ms  = ms[-1] - ms[0] if len(ms) > 1 else 0.0

	step_ms = studiocore.step_sequencer.step_duration(bpm) * 1000

	print(f"\nStep Jitter Benchmark: {bars} bars at {bpm:.0f} BPM")
	print(f"{'─' * 62}")
	print(f"  Steps measured  : {len(ms)}")
	print(f"  Step interval   : {step_ms:.3f} ms")
	print(f"{'─' * 62}")
	print(f"  Mean lateness   : {mean_ms:>8.3f} ms")
	print(f"  Std deviation   : {stdev_ms:>8.3f} ms")
	print(f"  P95 lateness    : {p95_ms:>8.3f} ms")
	print(f"  Max lateness    : {max_ms:>8.3f} ms")
	print(f"  Drift           : {drift_ms:>+8.3f} ms  (first to last step)")
	print(f"{'─' * 62}")
	print()


def main () -> None:

	parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	parser.add_argument("--bpm",    type=float, default=120,  help="Tempo in BPM (default: 120)")
	parser.add_argument("--bars",   type=int,   default=16,   help="Bars to measure (default: 16)")
	parser.add_argument("--device", type=str,   default=None, help="MIDI output device name")
	args = parser.parse_args()

	jitter = _run_benchmark(args.bpm, args.bars, args.device)
	_print_report(jitter, args.bpm, args.bars)


if __name__ == "__main__":
	main()
