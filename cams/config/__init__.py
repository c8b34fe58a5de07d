"""Configuration module for the CAMS admin backend."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
