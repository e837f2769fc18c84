"""Configuration management package for dbimager."""

from .config_manager import ImagerConfig, ConfigValidationError

__all__ = ['ImagerConfig', 'ConfigValidationError']
