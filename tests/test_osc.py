import asyncio
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client
import pytest

import studiocore.midi_input
import studiocore.osc
import studiocore.studio

import conftest


@pytest.fixture
def studio (synth: conftest.FakeSynth) -> studiocore.studio.Studio:

	"""Create a studio for testing."""

	return studiocore.studio.Studio(synth=synth, midi_provider=conftest.FakeProvider())


async def _started_bridge (studio: studiocore.studio.Studio, send_port: int = 0) -> typing.Tuple[studiocore.osc.OscBridge, pythonosc.udp_client.SimpleUDPClient]:

	bridge = studiocore.osc.OscBridge(studio, receive_port=0, send_port=send_port)
	await bridge.start()

	assert bridge.receive_port is not None
	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", bridge.receive_port)

	return bridge, client


@pytest.mark.asyncio
async def test_osc_volume_handler (studio: studiocore.studio.Studio, synth: conftest.FakeSynth) -> None:

	"""Sending /volume should set the master volume in percent."""

	bridge, client = await _started_bridge(studio)

	client.send_message("/volume", 50)
	await asyncio.sleep(0.1)

	assert studio.master_volume == 50
	assert synth.volumes == [pytest.approx(0.5)]

	await bridge.stop()


@pytest.mark.asyncio
async def test_osc_drum_and_note_handlers (studio: studiocore.studio.Studio, synth: conftest.FakeSynth) -> None:

	"""Sending /drum and /note should play sounds through the studio."""

	bridge, client = await _started_bridge(studio)

	client.send_message("/drum", ["snare", 0.9])
	client.send_message("/note", ["A", 4, 0.25])
	await asyncio.sleep(0.1)

	assert synth.drums == [("snare", pytest.approx(0.9))]
	assert len(synth.notes) == 1
	assert synth.notes[0][0] == pytest.approx(440.0)
	assert synth.notes[0][1] == pytest.approx(0.25)

	await bridge.stop()


@pytest.mark.asyncio
async def test_osc_pattern_stop_handler (studio: studiocore.studio.Studio) -> None:

	"""Sending /pattern/stop should stop the step sequencer."""

	bridge, client = await _started_bridge(studio)

	studio.play_pattern({"kick": [False] * 16})
	assert studio.sequencer.is_playing is True

	client.send_message("/pattern/stop", [])
	await asyncio.sleep(0.1)

	assert studio.sequencer.is_playing is False

	await bridge.stop()


@pytest.mark.asyncio
async def test_osc_invalid_volume_is_ignored (studio: studiocore.studio.Studio, synth: conftest.FakeSynth) -> None:

	bridge, client = await _started_bridge(studio)

	client.send_message("/volume", "loud")
	await asyncio.sleep(0.1)

	assert synth.volumes == []

	await bridge.stop()


@pytest.mark.asyncio
async def test_osc_state_broadcasting (studio: studiocore.studio.Studio) -> None:

	"""The bridge should broadcast sequencer steps and MIDI notes."""

	received_messages: typing.List[typing.Tuple[str, typing.Tuple[typing.Any, ...]]] = []

	def handle_state (address: str, *args: typing.Any) -> None:
		received_messages.append((address, args))

	dispatcher = pythonosc.dispatcher.Dispatcher()
	dispatcher.map("/sequencer/step", handle_state)
	dispatcher.map("/midi/note_on", handle_state)
	dispatcher.map("/midi/note_off", handle_state)

	loop = asyncio.get_running_loop()
	recv_server = pythonosc.osc_server.AsyncIOOSCUDPServer(("127.0.0.1", 0), dispatcher, loop)
	transport, _ = await recv_server.create_serve_endpoint()
	recv_port = transport.get_extra_info("sockname")[1]

	bridge, _ = await _started_bridge(studio, send_port=recv_port)

	studio.events.emit_sync("step", 5)
	studio.events.emit_sync("note_on", studiocore.midi_input.LastNote(note=60, velocity=100, channel=0))
	studio.events.emit_sync("note_off", 60, 0)

	await asyncio.sleep(0.1)

	assert ("/sequencer/step", (5,)) in received_messages
	assert ("/midi/note_on", (60, 100, 0)) in received_messages
	assert ("/midi/note_off", (60, 0)) in received_messages

	await bridge.stop()

	# No broadcasting after stop.
	received_messages.clear()
	studio.events.emit_sync("step", 6)
	await asyncio.sleep(0.1)

	assert received_messages == []

	transport.close()
