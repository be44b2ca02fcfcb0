"""Natural-language task parsing."""

from .task_parser import TaskParser

__all__ = ["TaskParser"]
