"""Exceptions for the still frame editor."""

from stillframe.core.common import MSG_EXPORT_FAILED, MSG_PERMISSION_DENIED


class StillFrameError(Exception):
    """Base exception for stillframe."""
    pass


class VideoSourceError(StillFrameError):
    """The picked video cannot be opened or probed."""
    pass


class SampleFailure(StillFrameError):
    """A single thumbnail request failed. Never fatal to a sampling run."""
    pass


class ExportGeometryDegenerate(StillFrameError):
    """The crop cannot be mapped to a non-empty pixel rectangle."""
    pass


class ExportError(StillFrameError):
    """Export attempt failed; carries the message shown to the user."""

    user_message = MSG_EXPORT_FAILED

    def __init__(self, message: str = "", user_message: str = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class PermissionDenied(ExportError):
    """Writing to the library was not allowed."""

    user_message = MSG_PERMISSION_DENIED


class ExportServiceFailure(ExportError):
    """Frame fetch, image processing or library write failed."""
    pass
