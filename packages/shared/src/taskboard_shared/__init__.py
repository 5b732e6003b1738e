"""Shared contracts for the Taskboard client.

Provides the Pydantic models that cross component boundaries, the gateway
error taxonomy, client-side validation, and environment-driven settings.
"""
