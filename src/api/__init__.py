"""Reference ASR server speaking the VibeVoice SSE protocol."""
