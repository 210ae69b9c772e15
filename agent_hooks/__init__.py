"""Agent hook correlation service.

A service that receives tool and session lifecycle events from an AI
coding-agent host, correlates tool start/completion pairs for comment
checking, and nudges idle sessions that still have incomplete todos.
"""

__version__ = "0.3.0"
