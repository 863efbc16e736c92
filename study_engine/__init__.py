"""Exam session and adaptive scoring engine for an academic study platform."""

__version__ = "0.1.0"
