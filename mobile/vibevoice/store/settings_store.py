"""Persistent settings storage for server URL and auth token."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Union


@dataclass(slots=True)
class AppSettings:
    server_url: str = ""
    auth_token: str = ""
    verify_tls: bool = True
    ca_bundle: str = ""

    def is_configured(self) -> bool:
        return bool(self.server_url.strip()) and bool(self.auth_token.strip())

    def tls_policy(self) -> Union[bool, str]:
        """Certificate trust handed to the HTTP client: a CA bundle path or a flag."""
        if self.ca_bundle.strip():
            return self.ca_bundle.strip()
        return self.verify_tls


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = self._load()

    def _load(self) -> AppSettings:
        if not self.path.exists():
            return AppSettings()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            raw = {}
        if not isinstance(raw, dict):
            raw = {}
        settings = AppSettings()
        settings.server_url = _normalize_url(str(raw.get("server_url", "")))
        settings.auth_token = str(raw.get("auth_token", "")).strip()
        settings.verify_tls = bool(raw.get("verify_tls", settings.verify_tls))
        settings.ca_bundle = str(raw.get("ca_bundle", ""))
        return settings

    def get(self) -> AppSettings:
        return self._settings

    def is_configured(self) -> bool:
        return self._settings.is_configured()

    def update(self, **kwargs) -> AppSettings:
        for key, value in kwargs.items():
            if not hasattr(self._settings, key):
                continue
            current = getattr(self._settings, key)
            if isinstance(current, bool):
                setattr(self._settings, key, _to_bool(value))
            elif key == "server_url":
                setattr(self._settings, key, _normalize_url(value or ""))
            else:
                setattr(self._settings, key, str(value or "").strip())
        self._persist()
        return self._settings

    def _persist(self) -> None:
        self.path.write_text(json.dumps(asdict(self._settings)), encoding="utf-8")


def _normalize_url(value: str) -> str:
    return value.strip().rstrip("/")


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
