"""
tw-sync: keeps Taskwarrior tasks and Apple Reminders in step.
"""

__version__ = "0.1.0"
