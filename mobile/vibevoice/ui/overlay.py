"""Kivy overlay shown over the host layout while a session is active."""

from __future__ import annotations

from typing import Any, Callable

from kivy.graphics import Color, RoundedRectangle
from kivy.metrics import dp
from kivy.properties import StringProperty
from kivy.uix.widget import Widget
from kivymd.uix.boxlayout import MDBoxLayout
from kivymd.uix.button import MDFlatButton
from kivymd.uix.label import MDLabel

from ..services.session import SessionState
from .amplitude import AmplitudeHistory


class AmplitudeBars(Widget):
    """Vertical bars for the most recent input levels."""

    bar_fill = 0.6

    def __init__(self, history: AmplitudeHistory, **kwargs):
        super().__init__(**kwargs)
        self.history = history
        self.bind(pos=lambda *_: self.redraw(), size=lambda *_: self.redraw())

    def push(self, level: float) -> None:
        self.history.push(level)
        self.redraw()

    def redraw(self) -> None:
        self.canvas.clear()
        levels = self.history.levels()
        slot = self.width / len(levels)
        bar_width = slot * self.bar_fill
        gap = (slot - bar_width) / 2.0
        min_height = self.height * 0.08
        with self.canvas:
            Color(1, 1, 1, 0.7)
            for index, level in enumerate(levels):
                height = min_height + level * (self.height - min_height)
                x = self.x + index * slot + gap
                y = self.y + (self.height - height) / 2.0
                RoundedRectangle(pos=(x, y), size=(bar_width, height), radius=[bar_width / 2.0])


class VoiceOverlay(MDBoxLayout):
    status_text = StringProperty("Listening...")
    hint_text = StringProperty("Tap to stop")

    def __init__(self, on_stop: Callable[[], None], on_cancel: Callable[[], None], **kwargs):
        super().__init__(orientation="vertical", padding=dp(24), spacing=dp(12), **kwargs)
        self.md_bg_color = (0.08, 0.09, 0.11, 0.9)
        self._host: Any = None
        self.bars = AmplitudeBars(AmplitudeHistory(), size_hint_y=None, height=dp(40))
        self.status = MDLabel(text=self.status_text, halign="center")
        self.hint = MDLabel(text=self.hint_text, halign="center", theme_text_color="Hint")
        self.stop_button = MDFlatButton(text="Stop", on_release=lambda *_: on_stop())
        self.cancel_button = MDFlatButton(text="Cancel", on_release=lambda *_: on_cancel())
        self.bind(status_text=self.status.setter("text"), hint_text=self.hint.setter("text"))
        for child in (self.bars, self.status, self.hint, self.stop_button, self.cancel_button):
            self.add_widget(child)

    def attach(self, host: Any) -> None:
        self._host = host
        self.bars.history.reset()
        if host is not None and self.parent is None:
            host.add_widget(self)

    def set_state(self, state: SessionState) -> None:
        if state is SessionState.RECORDING:
            self.status_text = "Listening..."
            self.hint_text = "Tap stop when done"
            self.stop_button.disabled = False
        elif state is SessionState.TRANSCRIBING:
            self.status_text = "Transcribing..."
            self.hint_text = ""
            self.stop_button.disabled = True
        else:
            self.hint_text = ""

    def show_partial(self, text: str) -> None:
        self.hint_text = text[-80:]

    def update_amplitude(self, level: float) -> None:
        self.bars.push(level)

    def detach(self) -> None:
        host = self._host
        self._host = None
        if host is not None and self.parent is host:
            host.remove_widget(self)


__all__ = ["AmplitudeBars", "VoiceOverlay"]
