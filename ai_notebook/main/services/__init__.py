"""Storage and ingestion services used by the IPC handlers."""
