"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Custom storage backend (S3/MinIO/R2) and disk handles
- Metadata extraction (MIME type, extension)

Keep infrastructure concerns separate from business logic.
"""
