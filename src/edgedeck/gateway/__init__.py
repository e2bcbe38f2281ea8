"""Binding gateway: a uniform HTTP API over the runtime's bindings."""

from edgedeck.gateway.app import API_PREFIX, create_app, create_gateway_app
from edgedeck.gateway.pagination import Page, parse_page
from edgedeck.gateway.resolver import BindingResolver

__all__ = [
    "API_PREFIX",
    "BindingResolver",
    "Page",
    "create_app",
    "create_gateway_app",
    "parse_page",
]
