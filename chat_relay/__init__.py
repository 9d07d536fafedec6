"""Real-time chat relay: room membership and event fan-out over WebSocket."""

__version__ = "1.0.0"
