"""
Configuration discovery and loading.
"""

from chuk_mcp_tracker.config.loader import ConfigLoader, parse_config

__all__ = [
    "ConfigLoader",
    "parse_config",
]
