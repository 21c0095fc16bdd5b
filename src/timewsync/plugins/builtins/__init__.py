"""Plugins shipped with timewsync and registered by default."""
