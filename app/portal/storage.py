from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


class StorageError(RuntimeError):
    pass


class Storage:
    """Blob store for library uploads, addressed by storage key."""

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Remove the blob. Deleting a missing key is not an error."""
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _resolve(self, key: str) -> Path:
        target = (self.root / key.replace("\\", "/").lstrip("/")).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageError(f"Storage key outside {self.root}: {key!r}")
        return target

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        target = self._resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        return self._resolve(key).open("rb")

    def delete(self, key: str) -> None:
        self._resolve(key).unlink(missing_ok=True)


@dataclass(frozen=True)
class S3Storage(Storage):
    """Any S3-compatible bucket (AWS, DigitalOcean Spaces, MinIO)."""

    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str

    def _client(self):
        import boto3

        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        kwargs: dict[str, object] = {"Bucket": self.bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        self._client().put_object(**kwargs)

    def open(self, key: str) -> BinaryIO:
        return self._client().get_object(Bucket=self.bucket, Key=key)["Body"]  # type: ignore[return-value]

    def delete(self, key: str) -> None:
        # S3 treats deleting an absent key as success.
        self._client().delete_object(Bucket=self.bucket, Key=key)


def storage_from_config(config: dict) -> Storage:
    def _opt(name: str, default: str = "") -> str:
        return (config.get(name) or default).strip()

    backend = _opt("STORAGE_BACKEND", "local").lower()
    if backend == "s3":
        if not _opt("S3_BUCKET"):
            raise StorageError("STORAGE_BACKEND=s3 requires S3_BUCKET.")
        return S3Storage(
            endpoint=_opt("S3_ENDPOINT"),
            region=_opt("S3_REGION", "nyc3"),
            bucket=_opt("S3_BUCKET"),
            access_key_id=_opt("S3_ACCESS_KEY_ID"),
            secret_access_key=_opt("S3_SECRET_ACCESS_KEY"),
        )
    if backend != "local":
        raise StorageError(f"Unknown STORAGE_BACKEND {backend!r} (expected 'local' or 's3').")
    return LocalStorage(root=Path(os.getcwd()) / "storage")
