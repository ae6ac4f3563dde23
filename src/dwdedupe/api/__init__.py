"""Web layer: routers, dependencies and exception handlers."""
