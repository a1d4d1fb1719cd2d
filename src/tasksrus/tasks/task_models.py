# src/tasksrus/tasks/task_models.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

from ..errors import InvalidEncodingError

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(raw: str) -> date:
    """Strict YYYY-MM-DD (date.fromisoformat alone also accepts 20240101 etc.)."""
    if not isinstance(raw, str) or not _ISO_DATE_RE.match(raw):
        raise InvalidEncodingError(f"Invalid ISO-8601 date: {raw!r}")
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise InvalidEncodingError(f"Invalid ISO-8601 date: {raw!r}") from e


def format_iso_date(d: date) -> str:
    return d.isoformat()


def _optional_date(raw: str | None) -> date | None:
    return None if raw is None else parse_iso_date(raw)


def _optional_iso(d: date | None) -> str | None:
    return None if d is None else format_iso_date(d)


class ScheduledKind(StrEnum):
    ANYTIME = "anytime"
    SOMEDAY = "someday"
    DAY = "day"


@dataclass(frozen=True, slots=True)
class Scheduled:
    """
    When a task is meant to happen.

    Three variants:
    - anytime: ready whenever (the default for new tasks)
    - someday: deliberately deferred
    - day: a specific calendar date

    Persisted only in its textual form ("anytime", "someday" or YYYY-MM-DD).
    """

    kind: ScheduledKind
    day: date | None = None

    def __post_init__(self) -> None:
        if self.kind is ScheduledKind.DAY and self.day is None:
            raise ValueError("Scheduled day requires a date")
        if self.kind is not ScheduledKind.DAY and self.day is not None:
            raise ValueError(f"Scheduled {self.kind.value} takes no date")

    @classmethod
    def anytime(cls) -> Scheduled:
        return cls(ScheduledKind.ANYTIME)

    @classmethod
    def someday(cls) -> Scheduled:
        return cls(ScheduledKind.SOMEDAY)

    @classmethod
    def on(cls, day: date) -> Scheduled:
        return cls(ScheduledKind.DAY, day)

    @classmethod
    def parse(cls, raw: str) -> Scheduled:
        if raw == ScheduledKind.ANYTIME.value:
            return cls.anytime()
        if raw == ScheduledKind.SOMEDAY.value:
            return cls.someday()
        try:
            return cls.on(parse_iso_date(raw))
        except InvalidEncodingError:
            raise InvalidEncodingError(f"Invalid scheduled value: {raw!r}") from None

    def format(self) -> str:
        if self.kind is ScheduledKind.DAY:
            assert self.day is not None
            return format_iso_date(self.day)
        return self.kind.value

    def __str__(self) -> str:
        return self.format()


ANYTIME = Scheduled.anytime()
SOMEDAY = Scheduled.someday()


@dataclass(slots=True)
class Task:
    id: int
    title: str = ""
    description: str = ""
    scheduled: Scheduled = field(default=ANYTIME)
    completed: date | None = None
    deleted: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "scheduled": self.scheduled.format(),
            "completed": _optional_iso(self.completed),
            "deleted": _optional_iso(self.deleted),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Inverse of to_dict(); missing text fields default to '', a missing schedule to anytime."""
        try:
            task_id = int(data["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Task payload needs an integer id: {data!r}") from e

        return cls(
            id=task_id,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            scheduled=Scheduled.parse(data.get("scheduled", ScheduledKind.ANYTIME.value)),
            completed=_optional_date(data.get("completed")),
            deleted=_optional_date(data.get("deleted")),
        )

    @classmethod
    def from_row(cls, row: Any) -> Task:
        """Decode a `tasks` row; raises InvalidEncodingError on corrupt columns."""
        return cls(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            scheduled=Scheduled.parse(row["scheduled"]),
            completed=_optional_date(row["completed"]),
            deleted=_optional_date(row["deleted"]),
        )
