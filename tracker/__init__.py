"""Project Tracker: task tracking API and optimistic client cache."""

__version__ = "1.0.0"
