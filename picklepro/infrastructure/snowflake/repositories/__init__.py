"""
Repository pattern implementations for Snowflake.

Repositories translate between database rows and the raw records the
preload layer consumes.
"""

from .training import SnowflakeConfig, SnowflakeDataSource, TrainingDataRepository

__all__ = ["SnowflakeConfig", "SnowflakeDataSource", "TrainingDataRepository"]
