"""Interactive chat mode."""

from clode.interactive.repl import ChatRepl

__all__ = ["ChatRepl"]
