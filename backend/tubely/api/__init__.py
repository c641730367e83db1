"""
HTTP API for the Tubely backend.

- deps: dependency providers wiring services to app state and settings
- v1: versioned routers, mounted under /api
"""
