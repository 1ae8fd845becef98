# Passgen: KV Service API
#
# FastAPI routes exposing a KV backend over HTTP.

from .kv_routes import router as kv_router

__all__ = ["kv_router"]
