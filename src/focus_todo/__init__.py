"""focus-todo: task lists, recurring tasks, focus sessions and analytics."""

__version__ = "0.1.0"
