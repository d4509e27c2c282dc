"""Microphone capture and the WAV container it produces."""
