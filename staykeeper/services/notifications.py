# staykeeper/services/notifications.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

log = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = DEFAULT

    @property
    def is_error(self) -> bool:
        return self.variant == DESTRUCTIVE


class Notifier(Protocol):
    """Where user-visible messages go (a toast in a UI, a line in a CLI)."""

    def notify(self, title: str, description: str, variant: str = DEFAULT) -> None: ...


class LogNotifier:
    def notify(self, title: str, description: str, variant: str = DEFAULT) -> None:
        if variant == DESTRUCTIVE:
            log.warning("%s: %s", title, description)
        else:
            log.info("%s: %s", title, description)


class CollectingNotifier:
    def __init__(self) -> None:
        self.items: list[Notification] = []

    def notify(self, title: str, description: str, variant: str = DEFAULT) -> None:
        self.items.append(Notification(title=title, description=description, variant=variant))

    @property
    def errors(self) -> list[Notification]:
        return [n for n in self.items if n.is_error]

    def clear(self) -> None:
        self.items.clear()
