"""
Configuration module for localbox.
"""
from localbox.config.logging import setup_logging
from localbox.config.defaults import RuntimeConfig

__all__ = ["setup_logging", "RuntimeConfig"]
