"""
Media ingestion pipeline components.

- ingest: multipart part extraction and temporary staging
- media_types: Content-Type gating and extensions
- video_processing: ffmpeg fast-start remux
- probe: ffprobe orientation detection
- keys: object key derivation
- publisher: object store and local asset writers
- urls: static and presigned URL resolution
- thumbnail_cache: in-memory thumbnail store
- video_repository: MongoDB video records
- ingestion: the orchestrating IngestionService
"""
