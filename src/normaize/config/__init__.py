"""
Configuration module.
Exports the settings class and the singleton settings instance.
"""
from .settings import Settings, settings

__all__ = ["Settings", "settings"]
