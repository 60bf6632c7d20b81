"""radiodeck - playback and persistence engine for a terminal internet-radio client."""

__version__ = "0.1.0"
