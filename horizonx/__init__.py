"""Linux host metrics sampling and an HTTP/WebSocket server that publishes them."""

__version__ = "0.1.0"