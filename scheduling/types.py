"""
Data types and constants for session scheduling.

This module contains:
- DTOs (Data Transfer Objects) for service layer operations
- Results returned by scheduler passes
- Constants used across the application
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import List, Optional


DEFAULT_DAYS_AHEAD = 7


@dataclass
class TemplateUpdateData:
    """DTO for template update operations."""
    name: Optional[str] = None
    title: Optional[str] = None
    weekday: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_active: Optional[bool] = None
    auto_schedule: Optional[bool] = None


@dataclass(frozen=True)
class TemplateError:
    """A template that could not be processed during a scheduler pass."""
    template_id: int
    message: str


@dataclass
class SchedulingResult:
    """Outcome of a scheduler pass over one or more templates."""
    created: List = field(default_factory=list)
    skipped: int = 0
    errors: List[TemplateError] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def merge(self, other: 'SchedulingResult') -> 'SchedulingResult':
        """Fold another pass into this one and return self."""
        self.created.extend(other.created)
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self


@dataclass(frozen=True)
class ScheduleWindow:
    """The inclusive range of dates a pass may populate."""
    today: date
    last_day: date

    def __contains__(self, day: date) -> bool:
        return self.today <= day <= self.last_day
