"""Message/command reducer driving all state changes."""

from . import commands, messages
from .reducer import HANDLERS, update, validation_problem

__all__ = ["HANDLERS", "commands", "messages", "update", "validation_problem"]
