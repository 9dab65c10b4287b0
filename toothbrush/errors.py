"""Exceptions raised by the toothbrush client."""


class ToothbrushError(Exception):
    """Base class for all toothbrush errors."""


class ConfigError(ToothbrushError):
    """Configuration could not be loaded or saved."""


class TransportError(ToothbrushError):
    """The search server was unreachable or answered with a non-2xx status."""


class DecodeError(ToothbrushError):
    """The search server answered with a body that could not be decoded."""


class EditorLaunchError(ToothbrushError):
    """Neither the editor nor the platform opener could be started."""


class ScratchFileError(EditorLaunchError):
    """The scratch file for a note could not be written."""


class ClipboardError(ToothbrushError):
    """The system clipboard rejected a copy."""
