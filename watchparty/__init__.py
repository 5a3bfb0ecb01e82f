"""Real-time watch-together sessions over WebSockets."""
__version__ = "1.0.0"
