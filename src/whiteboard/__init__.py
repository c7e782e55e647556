"""Whiteboard backend: board access control, naming and recents."""
