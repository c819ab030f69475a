# tactics/core/__init__.py
"""Fixed game constants."""
