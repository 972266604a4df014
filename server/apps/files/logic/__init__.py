"""Business logic layer for files app.

This package contains all business logic for stored files:
- Storing uploads, remote URLs and base64 contents on a disk
- Destination naming and access URL refresh
- Attaching files to owning entities
- Archiving, restoring and syncing file records

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
