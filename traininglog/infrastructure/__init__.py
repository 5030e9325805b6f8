"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Persistence for logs, training slots and skipped days

These wrappers translate between external formats and our domain models.
"""
