"""Common utilities for ChangeGate."""

from .logger import configure_logging, get_logger, setup_logger
from .config import load_config, load_rule_catalog

__all__ = ["configure_logging", "get_logger", "load_config", "load_rule_catalog", "setup_logger"]
