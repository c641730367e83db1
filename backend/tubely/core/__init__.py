"""
Core infrastructure for the Tubely backend.

- auth: Bearer token extraction and local JWT verification
- database: MongoDB async client with Motor driver and connection pooling
- exceptions: Pipeline error taxonomy mapped to HTTP statuses
- limits: ASGI middleware enforcing per-route request body ceilings
- storage: S3-compatible storage client for MinIO/AWS S3 operations
"""
