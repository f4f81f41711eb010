"""
Infrastructure layer - external service integrations.

- snowflake: Backend data access for programs, coaches and logbook entries

These wrappers translate between external formats and the raw records the
preload layer consumes.
"""
