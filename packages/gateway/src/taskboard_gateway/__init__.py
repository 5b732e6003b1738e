"""Remote Gateway: the HTTP client for auth and task operations."""

from taskboard_gateway.client import RemoteGateway

__all__ = ["RemoteGateway"]
