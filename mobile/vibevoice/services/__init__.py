"""Network client, session lifecycle and supporting services."""
