"""Object storage adapters."""

from flowvault.storage.objects import MinioObjectStore, ObjectStore

__all__ = ["MinioObjectStore", "ObjectStore"]
