"""VibeVoice voice input client: capture, upload, transcript commit."""

__version__ = "0.1.0"
