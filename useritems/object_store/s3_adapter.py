"""S3-backed object store adapter."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from useritems.object_store.adapter import (
    DEFAULT_CONTENT_TYPE,
    ListPage,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectSummary,
    ObjectTooLargeError,
    StoredObject,
)

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchObject"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3ObjectStore:
    """S3 object store for user items.

    Fails fast when no bucket is configured. Credentials come from boto3's own
    resolution chain (env, profile, instance role); nothing is read from globals.
    """

    def __init__(
        self,
        bucket_name: Optional[str],
        client: Optional[Any] = None,
        region: Optional[str] = None,
    ) -> None:
        bucket_name = (bucket_name or "").strip()
        if not bucket_name:
            raise ObjectStoreError(
                "USER_ITEMS_BUCKET config missing. "
                "Set USER_ITEMS_BUCKET to the S3 bucket holding user items."
            )
        self.bucket_name = bucket_name
        if client is not None:
            self.client = client
        else:
            cfg = Config(retries={"max_attempts": 1, "mode": "standard"}, region_name=region)
            self.client = boto3.client("s3", config=cfg)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket_name,
            "Key": key,
            "Body": data,
            "ContentType": content_type or DEFAULT_CONTENT_TYPE,
        }
        if metadata:
            # S3 metadata keys must be strings
            kwargs["Metadata"] = {str(k): str(v) for k, v in metadata.items() if v is not None}
        try:
            self.client.put_object(**kwargs)
        except ClientError as exc:
            raise ObjectStoreError(f"S3 put failed for {key}: {_error_code(exc)}") from exc

    def get_object(self, key: str, max_bytes: Optional[int] = None) -> StoredObject:
        try:
            resp = self.client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise ObjectNotFoundError(key) from exc
            raise ObjectStoreError(f"S3 get failed for {key}: {_error_code(exc)}") from exc

        body = resp["Body"]
        content_length = int(resp.get("ContentLength") or 0)
        try:
            if max_bytes is not None and content_length > max_bytes:
                raise ObjectTooLargeError(key, content_length, max_bytes)
            data = body.read()
        finally:
            body.close()
        logger.debug("GET %s read %d bytes", key, len(data))
        return StoredObject(
            data=data,
            content_length=content_length or len(data),
            content_type=resp.get("ContentType") or DEFAULT_CONTENT_TYPE,
            metadata=dict(resp.get("Metadata") or {}),
        )

    def object_exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise ObjectStoreError(f"S3 head failed for {key}: {_error_code(exc)}") from exc

    def delete_object(self, key: str) -> bool:
        if not self.object_exists(key):
            logger.debug("Did not find object at: %s", key)
            return False
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as exc:
            raise ObjectStoreError(f"S3 delete failed for {key}: {_error_code(exc)}") from exc
        logger.debug("Deleted object at: %s", key)
        return True

    def list_page(
        self,
        prefix: str,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> ListPage:
        kwargs: Dict[str, Any] = {"Bucket": self.bucket_name, "Prefix": prefix}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token
        if max_keys:
            kwargs["MaxKeys"] = max_keys
        try:
            resp = self.client.list_objects_v2(**kwargs)
        except ClientError as exc:
            raise ObjectStoreError(f"S3 list failed for {prefix}: {_error_code(exc)}") from exc
        objects = [
            ObjectSummary(key=item["Key"], size=int(item.get("Size") or 0))
            for item in resp.get("Contents") or []
        ]
        next_token = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        return ListPage(objects=objects, next_token=next_token)
