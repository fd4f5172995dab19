"""Configuration management for the RE NXT MCP server."""

from .settings import Config, ConfigError

__all__ = ["Config", "ConfigError"]
