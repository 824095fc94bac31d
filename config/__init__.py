"""Configuration module for the messaging server.

Supports multiple environments:
- development (default)
- staging
- production

Usage:
    from config import config

    # Access config values
    debug = config.DEBUG
    mongo_uri = config.MONGO_URI

    # Check environment
    if config.IS_DEV:
        print("Running in development mode")

Set environment via:
- FLASK_ENV=production
- APP_ENV=staging
"""
from .settings import config, Config

__all__ = ['config', 'Config']
