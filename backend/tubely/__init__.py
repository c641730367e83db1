"""
Tubely Media Ingestion Backend

This package contains the Tubely FastAPI application that accepts video and
thumbnail uploads, normalizes them, and publishes them to S3-compatible
object storage. The platform provides:

- Bearer-token authentication with ownership checks on every video record
- Streaming multipart ingestion into scoped temporary files
- ffprobe-based orientation detection and ffmpeg fast-start remuxing
- Orientation-prefixed object keys with random, collision-resistant tokens
- Static or presigned (time-limited) access URLs for stored media

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (database, storage, auth, errors, limits)
- models/: Pydantic data models for video records
- services/: Ingestion pipeline components
- utils/: Logging helpers
"""

__version__ = "1.0.0"
__app_name__ = "Tubely"
