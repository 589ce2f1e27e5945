"""Capability checks for dashboard roles."""

from __future__ import annotations

from enum import Enum
from typing import Literal

Role = Literal["HR_ADMIN", "RECRUITER", "EMPLOYEE"]


class Capability(str, Enum):
    VIEW_DASHBOARD = "dashboard:view"
    USE_HR_ASSISTANT = "hr_assistant:use"
    MANAGE_CANDIDATES = "candidates:manage"
    UPLOAD_BATCH = "batch:upload"
    VIEW_BATCH_RESULTS = "batch:view"
    RUN_INTERVIEWS = "interviews:run"
    UPLOAD_HR_DOCUMENTS = "hr_documents:upload"


_EVERYONE = frozenset({Capability.VIEW_DASHBOARD, Capability.USE_HR_ASSISTANT})

_HIRING = frozenset(
    {
        Capability.MANAGE_CANDIDATES,
        Capability.UPLOAD_BATCH,
        Capability.VIEW_BATCH_RESULTS,
        Capability.RUN_INTERVIEWS,
    }
)

ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    "HR_ADMIN": _EVERYONE | _HIRING | {Capability.UPLOAD_HR_DOCUMENTS},
    "RECRUITER": _EVERYONE | _HIRING,
    "EMPLOYEE": _EVERYONE,
}


def has_capability(role: str | None, action: Capability | str) -> bool:
    """Return True when ``role`` grants ``action``; unknown roles and actions grant nothing."""
    if not role:
        return False
    try:
        capability = Capability(action)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES.get(role, frozenset())
