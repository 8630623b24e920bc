"""Email reminders for to-do tasks that are about to fall due."""

__version__ = "0.1.0"
