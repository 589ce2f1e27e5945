"""Injectable time source."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import pendulum

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return pendulum.now("UTC")
