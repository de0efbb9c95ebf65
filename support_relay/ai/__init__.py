"""AI integration layer.

This module contains:
- providers: LLM provider abstraction, registry, and implementations
"""
