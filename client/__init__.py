# client/__init__.py
"""
Protocol side of the gridship bot: configuration, wire codec,
connection state machine and websocket transport.
"""
