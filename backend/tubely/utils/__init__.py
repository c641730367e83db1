"""
Utility modules for the Tubely backend.

- logger: Structured JSON logging and request context
- process: Bounded async subprocess execution for ffprobe/ffmpeg
"""
