"""
Adapters module - I/O surfaces.

Adapters are thin wrappers that forward to the announcement board and
the speech engine. They hold no scheduling or speech logic.
"""

from voice_announcer.adapters.cli import main

__all__ = ["main"]
