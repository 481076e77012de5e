import asyncio
import time
import typing

import pytest

import studiocore.step_sequencer

import conftest


T = True
F = False

KICK = [T, F, F, F, T, F, F, F, T, F, F, F, T, F, F, F]


@pytest.fixture
def fake_trigger () -> conftest.FakeTrigger:

	return conftest.FakeTrigger()


@pytest.fixture
def sequencer (fake_trigger: conftest.FakeTrigger) -> studiocore.step_sequencer.StepSequencer:

	return studiocore.step_sequencer.StepSequencer(fake_trigger)


@pytest.mark.parametrize("bpm, expected", [(60, 0.25), (120, 0.125), (180, 60 / 180 / 4)])
def test_step_duration (bpm: float, expected: float) -> None:

	"""A step is a sixteenth note: 60 / bpm / 4 seconds."""

	assert studiocore.step_sequencer.step_duration(bpm) == pytest.approx(expected)


def test_step_duration_rejects_non_positive_bpm () -> None:

	with pytest.raises(ValueError):
		studiocore.step_sequencer.step_duration(0)


def test_validate_pattern_requires_16_steps () -> None:

	with pytest.raises(ValueError, match="snare"):
		studiocore.step_sequencer.validate_pattern({"kick": KICK, "snare": [T, F, T]})


def test_validate_pattern_normalises_truthy_values () -> None:

	validated = studiocore.step_sequencer.validate_pattern({"hihat": [1, 0] * 8})

	assert validated["hihat"] == (True, False) * 8


@pytest.mark.asyncio
async def test_kick_fires_on_quarter_notes (sequencer: studiocore.step_sequencer.StepSequencer, fake_trigger: conftest.FakeTrigger) -> None:

	"""The four-on-the-floor kick fires at ticks 0, 4, 8 and 12 only."""

	sequencer.pattern = studiocore.step_sequencer.validate_pattern({"kick": KICK})
	fired_at: typing.List[int] = []

	for _ in range(16):
		step = sequencer.tick()
		await asyncio.sleep(0)
		if fake_trigger.drums:
			fired_at.append(step)
			fake_trigger.drums.clear()

	assert fired_at == [0, 4, 8, 12]


@pytest.mark.asyncio
async def test_step_index_wraps_at_16 (sequencer: studiocore.step_sequencer.StepSequencer) -> None:

	"""After 17 ticks the effective step is 1, while the raw counter keeps growing."""

	sequencer.pattern = studiocore.step_sequencer.validate_pattern({"kick": KICK})
	played: typing.List[int] = []

	for _ in range(17):
		played.append(sequencer.tick())

	assert played[16] == 0
	assert sequencer.step_count == 17
	assert sequencer.current_step == 1


@pytest.mark.asyncio
async def test_track_volumes (sequencer: studiocore.step_sequencer.StepSequencer, fake_trigger: conftest.FakeTrigger) -> None:

	"""Known tracks use their own level; others get the default."""

	sequencer.pattern = studiocore.step_sequencer.validate_pattern({"kick": [T] * 16, "cowbell": [T] * 16})

	sequencer.tick()
	await asyncio.sleep(0)

	assert sorted(fake_trigger.drums) == [("cowbell", 0.7), ("kick", 0.8)]


@pytest.mark.asyncio
async def test_play_and_stop (sequencer: studiocore.step_sequencer.StepSequencer) -> None:

	"""is_playing follows the task handle; stop resets the step counter."""

	assert sequencer.is_playing is False

	sequencer.play_pattern({"kick": KICK}, 120)

	assert sequencer.is_playing is True
	assert sequencer.step_duration == pytest.approx(0.125)

	await asyncio.sleep(0.01)
	assert sequencer.step_count >= 1

	task = sequencer.task
	sequencer.stop_pattern()
	await asyncio.sleep(0.01)

	assert sequencer.is_playing is False
	assert sequencer.step_count == 0
	assert task is not None and task.cancelled()


@pytest.mark.asyncio
async def test_restart_cancels_previous_run (sequencer: studiocore.step_sequencer.StepSequencer, fake_trigger: conftest.FakeTrigger) -> None:

	"""A second play_pattern leaves only the newest run; the first never ticks again."""

	sequencer.play_pattern({"kick": [T] * 16}, 600)
	await asyncio.sleep(0)
	first = sequencer.task

	sequencer.play_pattern({"snare": [T] * 16}, 600)
	second = sequencer.task
	await asyncio.sleep(0.1)

	assert first is not second
	assert first is not None and first.cancelled()
	assert sequencer.task is second and not second.done()

	tracks = [drum for drum, _ in fake_trigger.drums]

	# Only the first run's opening tick played a kick.
	assert tracks.count("kick") == 1
	assert tracks.count("snare") >= 2

	sequencer.stop_pattern()


@pytest.mark.asyncio
async def test_restart_starts_at_step_zero (sequencer: studiocore.step_sequencer.StepSequencer) -> None:

	steps: typing.List[int] = []
	sequencer.events.on("step", steps.append)

	sequencer.play_pattern({"kick": KICK}, 600)
	await asyncio.sleep(0.06)
	steps.clear()

	sequencer.play_pattern({"kick": KICK}, 600)
	await asyncio.sleep(0)

	assert steps[0] == 0

	sequencer.stop_pattern()


@pytest.mark.asyncio
async def test_tick_interval_matches_tempo (sequencer: studiocore.step_sequencer.StepSequencer) -> None:

	"""Ticks arrive at 60 / bpm / 4 second intervals, give or take timer jitter."""

	times: typing.List[float] = []
	sequencer.events.on("step", lambda step: times.append(time.perf_counter()))

	sequencer.play_pattern({"kick": KICK}, 600)
	await asyncio.sleep(0.26)
	sequencer.stop_pattern()

	assert len(times) >= 6

	mean_interval = (times[-1] - times[0]) / (len(times) - 1)

	assert mean_interval == pytest.approx(0.025, rel=0.2)


@pytest.mark.asyncio
async def test_failing_step_listener_does_not_stop_sequencer (sequencer: studiocore.step_sequencer.StepSequencer) -> None:

	def broken (step: int) -> None:
		raise RuntimeError("ui gone")

	sequencer.events.on("step", broken)
	sequencer.play_pattern({"kick": KICK}, 600)
	await asyncio.sleep(0.06)

	assert sequencer.is_playing is True
	assert sequencer.step_count >= 2

	sequencer.stop_pattern()


@pytest.mark.asyncio
async def test_render_failures_do_not_halt_ticks (trigger, synth: conftest.FakeSynth) -> None:

	"""Failing drum renders are isolated per hit; ticks keep coming."""

	synth.fail_render = True
	sequencer = studiocore.step_sequencer.StepSequencer(trigger)

	sequencer.play_pattern({"kick": [T] * 16}, 600)
	await asyncio.sleep(0.1)

	assert sequencer.is_playing is True
	assert sequencer.step_count >= 3
	assert trigger.render_failures >= 2

	sequencer.stop_pattern()
