"""Error taxonomy for the studio engine.

- ``UnsupportedCapability`` - the platform has no MIDI or audio support. Reported
  once and the feature stays disabled until the user asks again.
- ``AccessDenied`` - device access was refused. Retried only on an explicit call.
- ``InitializationFailure`` - a transient setup error. Safe to retry on the next call.
- ``RenderFailure`` - a single trigger call failed to render. Logged and swallowed.
"""


class StudioError (Exception):

	"""Base class for all studio engine errors."""


class UnsupportedCapability (StudioError):

	"""The platform lacks the requested capability (e.g. no MIDI backend)."""


class AccessDenied (StudioError):

	"""The platform refused access to its devices."""


class InitializationFailure (StudioError):

	"""Setting up the shared audio session failed."""


class RenderFailure (StudioError):

	"""The synthesis backend could not render a note or drum hit."""
