"""Client platform module.

This module provides the infrastructure under the chat layer:
- Relay HTTP client and wire models
- Settings loaded from the environment
- Logging and metrics
"""

from map_assistant.platform.settings import Settings

__all__ = ["Settings"]
