"""Tab Timer: schedule a one-shot click or text entry against an open browser tab."""

__version__ = "0.1.0"
