"""Configuration module for EquiLedger."""

from equiledger.config.logging import configure_logging, get_logger
from equiledger.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging", "get_logger"]
