"""Interactive terminal front end."""

from aiderlink.interactive.repl import InteractiveRepl

__all__ = ["InteractiveRepl"]
