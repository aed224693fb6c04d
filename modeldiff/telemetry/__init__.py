"""Telemetry for the diff engine: operation timing."""

from modeldiff.telemetry.profiling import ProfileCollector, ProfileResult, profile_operation

__all__ = [
    "ProfileCollector",
    "ProfileResult",
    "profile_operation",
]
