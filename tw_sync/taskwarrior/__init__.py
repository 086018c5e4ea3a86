"""Taskwarrior module: the task-side store."""

from .gateway import TaskwarriorGateway
from .tasks import TaskwarriorTaskManager

__all__ = ['TaskwarriorGateway', 'TaskwarriorTaskManager']
