"""timewsync: keeps a live, subscribable view of a Timewarrior timer."""

__version__ = "0.1.0"
