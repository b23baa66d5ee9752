"""Running tally of a dispatch attempt and the status rules derived from it."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from app.models.notification import SendStatus

TOKEN_PREFIX_LEN = 20


@dataclass
class DispatchProgress:
    progress: int = 0
    success_count: int = 0
    failure_count: int = 0
    errors: list[str] = field(default_factory=list)
    max_errors: int = 10

    def record_success(self) -> None:
        self.success_count += 1
        self.progress += 1

    def record_failure(self, token: str, error: str) -> None:
        self.failure_count += 1
        self.progress += 1
        self.errors.append(format_delivery_error(token, error))
        # keep the most recent entries only
        if len(self.errors) > self.max_errors:
            del self.errors[: len(self.errors) - self.max_errors]

    def final_status(self) -> SendStatus:
        if self.failure_count == 0:
            return SendStatus.SENT
        if self.success_count == 0:
            return SendStatus.FAILED
        return SendStatus.PARTIAL


def format_delivery_error(token: str, error: str) -> str:
    prefix = token[:TOKEN_PREFIX_LEN]
    if len(token) > TOKEN_PREFIX_LEN:
        prefix += "..."
    return f"{prefix}: {error}"


def percent_complete(progress: int, total: int) -> int:
    """Whole percent, halves rounded up."""
    if total <= 0:
        return 0
    return math.floor(progress / total * 100 + 0.5)
