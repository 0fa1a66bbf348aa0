"""LogEvent model and error projection helpers."""

import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from log_relay.sanitizer import sanitize


class Level(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    DEBUG = "debug"


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T08:23:45.123Z."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def project_error(error) -> dict:
    """Map any thrown or error-like value to ``{name, message, stack}``.

    Missing fields come back as None rather than raising.
    """
    if error is None:
        return {"name": None, "message": None, "stack": None}

    if isinstance(error, BaseException):
        stack = None
        if error.__traceback__ is not None:
            stack = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return {"name": type(error).__name__, "message": str(error), "stack": stack}

    if isinstance(error, Mapping):
        return {
            "name": error.get("name"),
            "message": error.get("message"),
            "stack": error.get("stack"),
        }

    return {"name": None, "message": str(error), "stack": None}


def describe_error(error) -> dict:
    """Error projection plus its string representation."""
    projected = project_error(error)
    name, message = projected["name"], projected["message"]
    if name and message:
        text = f"{name}: {message}"
    else:
        text = name or message
    projected["string"] = text
    return projected


@dataclass(frozen=True)
class LogEvent:
    level: Level
    message: str
    data: object
    source: str
    timestamp: str
    url: str
    user_agent: str
    version: str

    @classmethod
    def create(
        cls,
        level: Level,
        message: str,
        data=None,
        source: str = "unknown",
        url: str = "",
        user_agent: str = "",
        version: str = "",
        now: datetime | None = None,
    ) -> "LogEvent":
        """Build an event, sanitizing ``data`` and stamping the capture time."""
        return cls(
            level=Level(level),
            message=str(message),
            data=sanitize(data),
            source=source or "unknown",
            timestamp=utc_timestamp(now),
            url=url,
            user_agent=user_agent,
            version=version,
        )

    def to_dict(self) -> dict:
        """Wire form posted to the sink."""
        return {
            "level": self.level.value,
            "message": self.message,
            "data": self.data,
            "source": self.source,
            "version": self.version,
            "timestamp": self.timestamp,
            "url": self.url,
            "userAgent": self.user_agent,
        }
