"""HTTP gateway that runs ffmpeg commands and publishes their outputs."""

__version__ = "0.1.0"
