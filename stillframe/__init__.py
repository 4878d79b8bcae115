"""Pick a video frame, edit it, export a full-resolution still."""

__version__ = "0.1.0"
