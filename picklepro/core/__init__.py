"""
Core logic for the training app's data layer.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. The preload coordinator only sees a
DataSource protocol, so it can be tested against in-process fakes.
"""
