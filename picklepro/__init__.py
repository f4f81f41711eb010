"""
PicklePro - data layer for a pickleball training and coaching app.

This package contains the complete application:
- core: Framework-agnostic preloading/cache coordination and session model
- infrastructure: Backend data access (Snowflake)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
