"""Core module for DI container and other core utilities."""

from support_relay.core.di import Container, get_container, set_container

__all__ = [
    "Container",
    "get_container",
    "set_container",
]
