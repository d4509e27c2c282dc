"""Persistent client-side state."""
