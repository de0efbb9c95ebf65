"""Support chat relay: streams LLM answers to support chat clients over HTTP and WebSocket."""

__version__ = "0.1.0"
