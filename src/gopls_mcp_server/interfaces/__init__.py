"""Protocols shared between the lifecycle controller and the services it runs."""

from gopls_mcp_server.interfaces.service_runner import ServiceFactory, ServiceRunner

__all__ = ["ServiceFactory", "ServiceRunner"]
