"""
Core business logic for training logs.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. Streak and schedule logic can be tested
in isolation with plain objects and a fixed clock.
"""
