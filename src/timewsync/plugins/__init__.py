"""Extension layer: event fan-out and the pluggy hook system.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints.
INVARIANT: Plugin failures are warnings, never errors.
"""

from timewsync.plugins.manager import PluginManager
from timewsync.plugins.publisher import EventPublisher, Subscription

__all__ = ["EventPublisher", "PluginManager", "Subscription"]
