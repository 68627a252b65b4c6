"""Helpers for a monitoring operator: heap sizing, logging, signals and StatefulSet planning."""

__version__ = "0.1.0"
__all__ = ["logs", "memory", "signals", "statefulsets", "vzlog"]