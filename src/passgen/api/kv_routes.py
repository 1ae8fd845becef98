# Passgen: KV Service - REST endpoints over a local KV store
#
# Lets several hosts share one backend through passgen.kv.HttpStore.
# Keys are full paths (environment included) passed as query parameters.
#
# Endpoints:
# - GET    /api/kv/exists?key=
# - GET    /api/kv/record?key=
# - PUT    /api/kv/record
# - DELETE /api/kv/record?key=
# - GET    /api/kv/list?prefix=
# - DELETE /api/kv/tree?prefix=

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..core.audit_log import EventSeverity, EventType, get_audit_logger
from ..core.config import get_settings
from ..core.exceptions import BackendError, ValidationError
from ..kv.base import KVStore
from ..kv.factory import build_store
from .security import verify_service_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/kv", tags=["kv"])

# Store served by this process (lazily built from settings)
_store: Optional[KVStore] = None


def get_store() -> KVStore:
    global _store
    if _store is None:
        kv_options = dict(get_settings().kv_options)
        # Clients send environment-qualified keys
        kv_options["environment"] = ""
        _store = build_store(kv_options)
    return _store


def set_store(store: Optional[KVStore]) -> None:
    global _store
    _store = store


# Request/Response Models
class PutRecordRequest(BaseModel):
    key: str = Field(..., min_length=1)
    value: Dict[str, Any]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ExistsResponse(BaseModel):
    key: str
    exists: bool


def _run(operation, *args):
    try:
        return operation(*args)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BackendError as e:
        logger.error("KV backend failure: %s", e)
        get_audit_logger().log_event(
            event_type=EventType.BACKEND_ERROR,
            severity=EventSeverity.CRITICAL,
            message=f"KV service backend failure in {operation.__name__}",
            details={"args": [str(a) for a in args], "error": str(e)},
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/exists", response_model=ExistsResponse)
async def key_exists(key: str = Query(""), token=Depends(verify_service_token)):
    """Whether ``key`` is a record or a folder."""
    return ExistsResponse(key=key, exists=_run(get_store().exists, key))


@router.get("/record")
async def get_record(key: str = Query(..., min_length=1), token=Depends(verify_service_token)):
    record = _run(get_store().get, key)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Key '{key}' not found"
        )
    return record.to_dict()


@router.put("/record")
async def put_record(request: PutRecordRequest, token=Depends(verify_service_token)):
    _run(get_store().put, request.key, request.value, request.metadata)
    return {"success": True, "key": request.key}


@router.delete("/record")
async def delete_record(key: str = Query(..., min_length=1), token=Depends(verify_service_token)):
    _run(get_store().delete, key)
    return {"success": True, "key": key}


@router.get("/list")
async def list_folder(prefix: str = Query(""), token=Depends(verify_service_token)):
    """Immediate keys and folders under ``prefix``."""
    return _run(get_store().list, prefix).to_dict()


@router.delete("/tree")
async def delete_tree(prefix: str = Query(""), token=Depends(verify_service_token)):
    _run(get_store().delete_tree, prefix)
    return {"success": True, "prefix": prefix}
