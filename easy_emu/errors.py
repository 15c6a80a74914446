"""Error kinds raised while resolving and launching a VM.

Every error is terminal: ``main`` prints the message and exits with status 1.
"""


class EasyEmuError(Exception):
    """Base class for all easy-emu failures."""


class UsageError(EasyEmuError):
    """Malformed or unknown flags, or a flag missing its value."""


class ValidationError(EasyEmuError):
    """A value is well-formed but not acceptable (unit suffix, CPU topology, missing ISO)."""


class NotFoundError(EasyEmuError):
    """A file the configuration refers to does not exist."""


class ConflictError(EasyEmuError):
    """The disk image to be created already exists."""


class ExternalToolError(EasyEmuError):
    """An external helper failed or could not be executed."""
