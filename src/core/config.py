"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PollConfig:
    """Polling cadence for the scheduler."""

    interval_seconds: float = 60.0
    source_delay_seconds: float = 1.0
    fetch_limit: int = 10
    fetch_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class RetentionConfig:
    """Delivery record cleanup horizon."""

    days: int = 7
    interval_hours: float = 24.0


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    link_preview: bool = True
