"""Realtime presence and collaboration events."""

from .presence import Connection, PresenceHub, Viewer, bug_room, user_room

__all__ = ["Connection", "PresenceHub", "Viewer", "bug_room", "user_room"]
