"""Personal task store: tasks, parent/child links and categorized views."""

__version__ = "0.1.0"
