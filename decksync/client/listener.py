"""Contract for the presentation layer that observes a session."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .effects import EffectRequest, EffectResult
    from .events import RevealEvent
    from .models import LogEntry, Notice


class SessionListener(Protocol):
    def on_render(self, reasons: frozenset[str]) -> None:
        """Observable state changed; ``reasons`` names the parts (turn, combat, discard, zones)."""

    def on_log(self, entry: "LogEntry") -> None:
        """A line was added to the action log."""

    def on_reveal(self, event: "RevealEvent") -> None:
        """Show the large notification for another player's play/discard/activation."""

    def on_effect_prompt(self, request: "EffectRequest") -> None:
        """Another player asked to see this client's deck or hand."""

    def on_effect_result(self, result: "EffectResult") -> None:
        """A request this client made was answered; show the browse sheet."""

    def on_notice(self, notice: "Notice") -> None:
        """Short transient message (toast)."""


class NullListener:
    def on_render(self, reasons: frozenset[str]) -> None:
        return None

    def on_log(self, entry: "LogEntry") -> None:
        return None

    def on_reveal(self, event: "RevealEvent") -> None:
        return None

    def on_effect_prompt(self, request: "EffectRequest") -> None:
        return None

    def on_effect_result(self, result: "EffectResult") -> None:
        return None

    def on_notice(self, notice: "Notice") -> None:
        return None
