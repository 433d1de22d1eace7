"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Browser, render deadline and asset settings
- logging: Structured logging configuration
"""
