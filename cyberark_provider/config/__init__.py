"""Configuration module for the CyberArk provider."""
from .settings import ProviderSettings, load_settings

__all__ = ["ProviderSettings", "load_settings"]
