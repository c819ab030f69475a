# utils/__init__.py
"""Process-wide helpers shared by the client entrypoint."""
