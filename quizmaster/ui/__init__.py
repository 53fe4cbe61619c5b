"""Qt integration for desktop front ends."""

from .qt_clock import QtClock

__all__ = ["QtClock"]
