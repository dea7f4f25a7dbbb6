"""User item API routes.

Caller identity comes from the X-User-Name / X-User-Id headers set by the auth
boundary in front of this service.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response

from useritems.common.error_envelope import error_response
from useritems.common.identity import UserContext, get_user_context
from useritems.object_store.adapter import ObjectNotFoundError, ObjectStoreError, ObjectTooLargeError
from useritems.user_items.errors import (
    InternalError,
    InvalidItemRequestError,
    QuotaExceededError,
    UnsupportedEncodingError,
    UploadTooLargeError,
)
from useritems.user_items.service import AvailableEncodings, UserItemService, get_user_item_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user-items", tags=["user_items"])

RESOURCE_KIND = "user_item"


def get_service() -> UserItemService:
    return get_user_item_service()


def _internal_error(code: str) -> None:
    error_response(
        code=code,
        message="Internal error while handling the item",
        status_code=500,
        resource_kind=RESOURCE_KIND,
    )


@router.post("/items")
async def upload_item(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    ctx: UserContext = Depends(get_user_context),
    service: UserItemService = Depends(get_service),
) -> Dict[str, Any]:
    """Store an uploaded file plus its derived preview/preferred renditions."""
    limit = service.settings.max_upload_bytes
    # at most limit + 1 bytes are buffered; anything past the limit is rejected
    content = await file.read(limit + 1)
    try:
        result = service.add_item(ctx, name or file.filename or "", content)
    except UploadTooLargeError as exc:
        error_response(
            code="user_items.upload_too_large",
            message=f"Upload exceeds the {exc.limit} byte limit",
            status_code=413,
            resource_kind=RESOURCE_KIND,
            details={"limit": exc.limit},
        )
    except QuotaExceededError as exc:
        error_response(
            code="user_items.quota_exceeded",
            message=str(exc),
            status_code=403,
            resource_kind=RESOURCE_KIND,
            details={"scope": exc.scope, "limit": exc.limit},
        )
    except InvalidItemRequestError as exc:
        error_response(
            code="user_items.invalid_request", message=str(exc), status_code=400, resource_kind=RESOURCE_KIND
        )
    except (InternalError, ObjectStoreError):
        logger.exception("Upload failed for user %s (request %s)", ctx.user_name, ctx.request_id)
        _internal_error("user_items.upload_failed")
    return {
        "type": result.category.value,
        "display_name": result.display_name,
        "keys": {variant.value: key for variant, key in result.keys.items()},
    }


@router.get("/items")
def list_items(
    ctx: UserContext = Depends(get_user_context),
    service: UserItemService = Depends(get_service),
) -> List[Dict[str, Any]]:
    try:
        return [item.to_listing() for item in service.list_items(ctx)]
    except ObjectStoreError:
        logger.exception("Listing failed for user %s (request %s)", ctx.user_name, ctx.request_id)
        _internal_error("user_items.list_failed")


@router.get("/items/{category}/{variant}/{name}")
def get_item(
    category: str,
    variant: str,
    name: str,
    encoding: Optional[str] = Query(None, description="IDENTITY (default) or BASE64"),
    ctx: UserContext = Depends(get_user_context),
    service: UserItemService = Depends(get_service),
) -> Response:
    try:
        encoding = service.normalize_encoding(encoding)
        data = service.get_item(ctx, category, variant, name, encoding=encoding)
    except UnsupportedEncodingError as exc:
        error_response(
            code="user_items.unsupported_encoding", message=str(exc), status_code=400, resource_kind=RESOURCE_KIND
        )
    except InvalidItemRequestError as exc:
        error_response(
            code="user_items.invalid_request", message=str(exc), status_code=400, resource_kind=RESOURCE_KIND
        )
    except ObjectNotFoundError:
        error_response(
            code="user_items.not_found",
            message=f"Item not found: {category}/{variant}/{name}",
            status_code=404,
            resource_kind=RESOURCE_KIND,
        )
    except ObjectTooLargeError as exc:
        logger.error("Refusing to buffer %s: %d bytes exceeds %d", exc.key, exc.size, exc.limit)
        _internal_error("user_items.object_too_large")
    except ObjectStoreError:
        logger.exception("Retrieve failed for user %s (request %s)", ctx.user_name, ctx.request_id)
        _internal_error("user_items.get_failed")
    media_type = "text/plain" if encoding == AvailableEncodings.BASE64 else "application/octet-stream"
    return Response(content=data, media_type=media_type)


@router.delete("/items/{category}/{variant}/{name}")
def delete_item_variant(
    category: str,
    variant: str,
    name: str,
    ctx: UserContext = Depends(get_user_context),
    service: UserItemService = Depends(get_service),
) -> Dict[str, Any]:
    try:
        deleted = service.delete_variant(ctx, category, variant, name)
    except InvalidItemRequestError as exc:
        error_response(
            code="user_items.invalid_request", message=str(exc), status_code=400, resource_kind=RESOURCE_KIND
        )
    except ObjectStoreError:
        logger.exception("Delete failed for user %s (request %s)", ctx.user_name, ctx.request_id)
        _internal_error("user_items.delete_failed")
    return {"deleted": deleted}
