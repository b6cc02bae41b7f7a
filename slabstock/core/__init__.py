"""Core domain layer - entities, interfaces, state machine, and exceptions."""

from slabstock.core import entities, exceptions, interfaces, state_machine

__all__ = ["entities", "interfaces", "exceptions", "state_machine"]
