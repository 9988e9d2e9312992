from __future__ import annotations

import io
from typing import Protocol

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from flowvault.artifacts.errors import ObjectStoreUnavailableError
from flowvault.config.models import ObjectStoreConfig

MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchObject"}
TRANSPORT_ERRORS = (MinioException, HTTPError)


class ObjectStore(Protocol):
    """Flat key/value blob storage partitioned with ``/``.

    ``list`` returns full key names. In non-recursive mode, common prefixes are
    returned with a trailing ``/`` the way S3 delimiter listings report them.
    """

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None: ...

    def get(self, key: str) -> bytes | None: ...

    def list(self, prefix: str = "", recursive: bool = False) -> list[str]: ...

    def delete(self, key: str) -> None: ...


class MinioObjectStore:
    def __init__(self, client: Minio, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_config(cls, cfg: ObjectStoreConfig, *, access_key: str, secret_key: str) -> "MinioObjectStore":
        client = Minio(
            endpoint=f"{cfg.endpoint}:{cfg.port}",
            access_key=access_key,
            secret_key=secret_key,
            secure=cfg.use_ssl,
        )
        return cls(client, cfg.bucket)

    def ensure_bucket(self) -> bool:
        """Create the bucket if needed. Returns True when it was created."""
        try:
            if self.client.bucket_exists(bucket_name=self.bucket):
                return False
            self.client.make_bucket(bucket_name=self.bucket)
            return True
        except TRANSPORT_ERRORS as exc:
            raise _transport_error("ensure bucket", self.bucket, exc) from exc

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        try:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except TRANSPORT_ERRORS as exc:
            raise _transport_error("put", key, exc) from exc

    def get(self, key: str) -> bytes | None:
        response = None
        try:
            response = self.client.get_object(bucket_name=self.bucket, object_name=key)
            return response.read()
        except S3Error as exc:
            if exc.code in MISSING_OBJECT_CODES:
                return None
            raise _transport_error("get", key, exc) from exc
        except TRANSPORT_ERRORS as exc:
            raise _transport_error("get", key, exc) from exc
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def list(self, prefix: str = "", recursive: bool = False) -> list[str]:
        try:
            return [
                obj.object_name
                for obj in self.client.list_objects(bucket_name=self.bucket, prefix=prefix, recursive=recursive)
                if obj.object_name
            ]
        except S3Error as exc:
            if exc.code == "NoSuchBucket":
                return []
            raise _transport_error("list", prefix, exc) from exc
        except TRANSPORT_ERRORS as exc:
            raise _transport_error("list", prefix, exc) from exc

    def delete(self, key: str) -> None:
        try:
            self.client.remove_object(bucket_name=self.bucket, object_name=key)
        except TRANSPORT_ERRORS as exc:
            raise _transport_error("delete", key, exc) from exc


def _transport_error(operation: str, key: str, exc: Exception) -> ObjectStoreUnavailableError:
    return ObjectStoreUnavailableError(f"Object store {operation} failed for '{key}': {exc}")
