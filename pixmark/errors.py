"""
Exception hierarchy for PixMark.

All of these are recoverable: the editor engine reports them to the user
and keeps working with its previous state.
"""


class PixmarkError(Exception):
    """Base class for PixMark errors."""


class ImageDecodeError(PixmarkError):
    """The supplied bytes could not be decoded into an image."""


class ExportError(PixmarkError):
    """Flattening or encoding the annotated image failed."""


class OperationPendingError(PixmarkError):
    """A one-shot operation (load or export) is already in progress."""
