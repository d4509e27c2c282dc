"""KivyMD entrypoint for the VibeVoice desktop client."""

from __future__ import annotations

import threading
from pathlib import Path

from kivy.clock import Clock
from kivy.lang import Builder
from kivy.properties import BooleanProperty, ListProperty, StringProperty
from kivymd.app import MDApp
from kivymd.uix.snackbar import Snackbar

from .config import CONFIG
from .services.dispatch import CancelHandle, Task
from .services.logger import LogBuffer
from .services.network import TranscriptionClient
from .services.permissions import InputDevicePermission
from .services.session import SessionController, SessionState
from .store.settings_store import SettingsStore
from .ui.overlay import VoiceOverlay


ROOT_KV = """
MDBoxLayout:
    orientation: "vertical"
    padding: "16dp"
    spacing: "12dp"
    MDLabel:
        text: "VibeVoice"
        font_style: "H5"
        size_hint_y: None
        height: self.texture_size[1]
    MDFloatLayout:
        id: host
        MDTextField:
            id: editor
            multiline: True
            hint_text: "Transcripts are inserted here"
            pos_hint: {"x": 0, "top": 1}
            size_hint: 1, 1
    MDBoxLayout:
        size_hint_y: None
        height: "52dp"
        spacing: "8dp"
        MDRaisedButton:
            text: "Stop" if app.is_recording else "Speak"
            disabled: app.session_state == "transcribing"
            on_release: app.toggle_recording()
        MDFlatButton:
            text: "Cancel"
            disabled: app.session_state == "idle"
            on_release: app.cancel()
        MDFlatButton:
            text: "Test connection"
            on_release: app.test_connection()
    MDTextField:
        id: server_input
        text: app.server_url
        hint_text: "https://asr.example.com"
        helper_text: "VibeVoice server URL"
        size_hint_y: None
        height: "56dp"
    MDTextField:
        id: token_input
        text: app.auth_token
        hint_text: "Auth token"
        password: True
        size_hint_y: None
        height: "56dp"
    MDRaisedButton:
        text: "Save settings"
        on_release: app.save_settings(server_input.text, token_input.text)
    MDLabel:
        text: "\\n".join(app.log_lines[-4:])
        theme_text_color: "Hint"
        size_hint_y: None
        height: "80dp"
"""


class ClockDispatcher:
    """Runs session callbacks on the Kivy main thread."""

    def post(self, fn: Task) -> None:
        Clock.schedule_once(lambda dt: fn(), 0)

    def post_delayed(self, delay: float, fn: Task) -> CancelHandle:
        event = Clock.schedule_once(lambda dt: fn(), delay)
        return event.cancel


class VibeVoiceApp(MDApp):
    is_recording = BooleanProperty(False)
    session_state = StringProperty(SessionState.IDLE.value)
    server_url = StringProperty("")
    auth_token = StringProperty("")
    log_lines = ListProperty([])

    def build(self):
        self.theme_cls.theme_style = "Dark"
        self.theme_cls.primary_palette = "BlueGray"
        self.base_dir = Path(self.user_data_dir or Path.home() / ".vibevoice")
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.settings_store = SettingsStore(self.base_dir / CONFIG.settings_file)
        settings = self.settings_store.get()
        self.server_url = settings.server_url
        self.auth_token = settings.auth_token
        self.logger = LogBuffer(CONFIG.log_history)
        root = Builder.load_string(ROOT_KV)
        self.overlay = VoiceOverlay(on_stop=self.stop_recording, on_cancel=self.cancel)
        self.controller = SessionController(
            self.settings_store,
            InputDevicePermission(),
            self._commit_text,
            self._show_snackbar,
            self.overlay,
            self.base_dir / "cache",
            self.logger.child("session"),
            dispatcher=ClockDispatcher(),
            on_partial=self.overlay.show_partial,
        )
        return root

    def on_start(self):
        Clock.schedule_interval(lambda dt: self._sync_state(), 0.25)

    def on_stop(self):
        self.controller.shutdown()

    def toggle_recording(self):
        if self.controller.state is SessionState.RECORDING:
            self.stop_recording()
        else:
            self.controller.start(self.root.ids.host)
        self._sync_state()

    def stop_recording(self):
        self.controller.stop()
        self._sync_state()

    def cancel(self):
        self.controller.cancel()
        self._sync_state()

    def save_settings(self, server_url: str, auth_token: str):
        self.settings_store.update(server_url=server_url, auth_token=auth_token)
        settings = self.settings_store.get()
        self.server_url = settings.server_url
        self.auth_token = settings.auth_token
        if self.server_url and not self.server_url.startswith("https://"):
            self.logger.add("Server URL is not HTTPS")
        self.logger.add("Settings saved")
        self._show_snackbar("Settings saved")

    def test_connection(self):
        client = TranscriptionClient.from_settings(self.settings_store.get())
        if client is None:
            self._show_snackbar("Server URL and token required")
            return

        def worker():
            try:
                ok = client.health_check()
            finally:
                client.close()
            message = "Connection OK" if ok else "Connection failed"
            self.logger.add(message)
            self._show_snackbar(message)

        threading.Thread(target=worker, daemon=True).start()

    def _commit_text(self, text: str) -> None:
        editor = self.root.ids.editor
        editor.insert_text(text if not editor.text or editor.text.endswith(" ") else f" {text}")

    def _sync_state(self) -> None:
        state = self.controller.state
        self.session_state = state.value
        self.is_recording = state is SessionState.RECORDING
        self.log_lines = self.logger.get()

    def _show_snackbar(self, text: str) -> None:
        def _display(*_):
            Snackbar(text=text, duration=1.8).open()

        Clock.schedule_once(_display, 0)


if __name__ == "__main__":
    VibeVoiceApp().run()
