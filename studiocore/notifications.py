import dataclasses
import logging
import typing

import studiocore.event_emitter


logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification"


@dataclasses.dataclass(frozen=True)
class Notification:

	"""
	A one-time, user-visible message (the UI shows it as a toast).
	"""

	title: str
	description: str
	variant: str = "default"


def notify (
	events: studiocore.event_emitter.EventEmitter,
	title: str,
	description: str,
	variant: str = "default"
) -> Notification:

	"""
	Build a notification, log it and broadcast it to ``"notification"`` listeners.
	"""

	notification = Notification(title=title, description=description, variant=variant)

	if variant == "destructive":
		logger.warning(f"{title}: {description}")
	else:
		logger.info(f"{title}: {description}")

	events.emit_sync(NOTIFICATION_EVENT, notification)

	return notification
