"""Controlled enumerations for the crowd-signal domain.

Every categorical field in the domain MUST reference an enum defined here.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class CrowdStatus(IntEnum):
    """Ordinal status a visitor can report."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    INSANE = 4


class CrowdLabel(str, Enum):
    """Four-level categorical crowd level derived from a signal."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    INSANE = "Insane"


class Confidence(str, Enum):
    """Recency-and-volume confidence in the current label."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Trend(str, Enum):
    """Direction of the crowd level between two time windows."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    UNKNOWN = "unknown"


class AlertThreshold(IntEnum):
    """When an alert subscription fires."""

    LOW = 1
    MEDIUM_OR_LOWER = 2
