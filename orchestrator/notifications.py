"""Notification sinks for messages shown to the student.

A sink only receives ``(kind, message)`` pairs; how long a message stays on
screen is up to the sink.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass
from enum import Enum

from rich.console import Console
from rich.markup import escape


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass
class Notification:
    kind: NotificationKind
    message: str


class Notifier(t.Protocol):
    def notify(self, kind: NotificationKind, message: str) -> None:
        ...


class RecordingNotifier:
    """Keeps every notification in memory, in arrival order."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.notifications.append(Notification(kind=kind, message=message))

    def of_kind(self, kind: NotificationKind) -> list[Notification]:
        return [n for n in self.notifications if n.kind == kind]


_STYLES = {
    NotificationKind.SUCCESS: ("green", "✓"),
    NotificationKind.ERROR: ("red", "✗"),
    NotificationKind.INFO: ("blue", "ℹ"),
}


class ConsoleNotifier:
    """Prints notifications to a rich console."""

    def __init__(self, console: t.Optional[Console] = None) -> None:
        self.console = console or Console()

    def notify(self, kind: NotificationKind, message: str) -> None:
        style, icon = _STYLES[kind]
        self.console.print(f"[{style}]{icon}[/{style}] {escape(message)}", highlight=False)
