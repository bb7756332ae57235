"""Command descriptor contract and registry for switchboard.

Provides the CommandDescriptor data contract, descriptor validation,
and the CommandRegistry that maps command names to descriptors.
"""

from .base import (
    DEFAULT_USAGE,
    CommandDescriptor,
    CommandSpec,
    Invocation,
    build_descriptor,
)
from .registry import CommandRegistry

__all__ = [
    "CommandDescriptor",
    "CommandRegistry",
    "CommandSpec",
    "DEFAULT_USAGE",
    "Invocation",
    "build_descriptor",
]
