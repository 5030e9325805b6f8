"""
Training Log - streaks and schedule compliance for coach/athlete training logs.

This package contains the complete application:
- core: Framework-agnostic streak and schedule logic
- infrastructure: External service integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
