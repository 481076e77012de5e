import logging
import typing

import mido

logger = logging.getLogger(__name__)


def select_output_device(device_name: typing.Optional[str] = None, interactive: bool = False) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:
    """
    Select and open a MIDI output port for the synthesis backend.

    If `device_name` is provided, opens that port.
    If `device_name` is None:
    - If exactly one port exists, it is selected automatically.
    - If several exist, the first is used, unless `interactive` is True, in
      which case the user picks one from the console.
    - If none exist, logs an error and returns (None, None).

    Returns:
        A tuple of (device_name, midi_out_object) or (None, None) on failure.
    """
    try:
        outputs = mido.get_output_names()
        logger.info(f"Available MIDI outputs: {outputs}")

        if not outputs:
            logger.error("No MIDI output devices found.")
            return None, None

        if device_name is not None:
            if device_name in outputs:
                midi_out = mido.open_output(device_name)
                logger.info(f"Opened MIDI output: {device_name}")
                return device_name, midi_out
            logger.error(
                f"MIDI output device '{device_name}' not found. "
                f"Available devices: {outputs}"
            )
            return None, None

        if len(outputs) == 1 or not interactive:
            selected_name = outputs[0]
            midi_out = mido.open_output(selected_name)
            logger.info(f"Using MIDI output '{selected_name}'")
            return selected_name, midi_out

        print("\nAvailable MIDI output devices:\n")
        for i, name in enumerate(outputs, 1):
            print(f"  {i}. {name}")
        print()

        while True:
            try:
                choice = int(input(f"Select a device (1-{len(outputs)}): "))
                if 1 <= choice <= len(outputs):
                    break
            except (ValueError, EOFError):
                pass
            print(f"Enter a number between 1 and {len(outputs)}.")

        selected_name = outputs[choice - 1]
        midi_out = mido.open_output(selected_name)
        logger.info(f"Opened MIDI output: {selected_name}")

        print(f"\nTip: To skip this prompt, set the device in config.yaml:\n")
        print(f"  audio:\n    output_device: \"{selected_name}\"\n")

        return selected_name, midi_out

    except Exception as e:
        logger.error(f"Failed to open MIDI output: {e}")
        return None, None


def open_input_device(device_name: str, callback: typing.Callable[[mido.Message], None]) -> typing.Optional[typing.Any]:
    """
    Open one MIDI input port with a message callback.

    The callback runs on the backend's own thread, not the event loop.

    Returns:
        The open port, or None when the port could not be opened.
    """
    try:
        midi_in = mido.open_input(device_name, callback=callback)
        logger.info(f"Listening to MIDI input: {device_name}")
        return midi_in

    except Exception as e:
        logger.error(f"Failed to open MIDI input '{device_name}': {e}")
        return None
