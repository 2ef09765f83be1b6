# =============================================================================
# api/rest.py  —  REST Facade (FastAPI)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   A plain-HTTP alternative to the MCP server.  Every route maps 1:1 to a
#   tool in tools/registry.py and returns the same Result Envelope.
#
#     POST /search_drugs           body = search_drugs arguments
#     POST /search_companies       body = search_companies arguments
#     POST /search_deals           body = search_deals arguments
#     POST /explore_ontology       body = explore_ontology arguments
#     GET  /drug/{id}              get_drug
#     GET  /drug/{id}/swot         get_drug_swot
#     GET  /drug/{id}/financial    get_drug_financial
#     GET  /company/{id}           get_company
#     GET  /tools                  tool definitions
#     GET  /health                 liveness
#
# ERRORS:
#   { "error": <message>, "code": <numeric code> }
#     ValidationError           → 400
#     AuthError / upstream      → 502
#     anything else             → 500
# =============================================================================

import logging
from typing import Any, Optional

from fastapi import Body, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.cortellis import CortellisService
from core.errors import INTERNAL_ERROR, INVALID_PARAMS, AuthError, CortellisError, ValidationError
from tools.registry import call_tool, list_tools

log = logging.getLogger(__name__)


class ErrorBody(BaseModel):
    error: str
    code: int


class HealthResponse(BaseModel):
    ok: bool = True


def _error_response(status_code: int, message: str, code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorBody(error=message, code=code).model_dump())


def _status_for(exc: CortellisError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, AuthError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(service: CortellisService) -> FastAPI:
    app = FastAPI(title="Cortellis Tool API", version="0.1.0")
    app.state.service = service

    async def run_tool(name: str, arguments: Any) -> dict:
        log.info("%s called with: %r", name, arguments)
        envelope = await call_tool(app.state.service, name, arguments)
        return envelope.to_dict()

    @app.exception_handler(CortellisError)
    async def cortellis_error_handler(request: Request, exc: CortellisError) -> JSONResponse:
        log.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(_status_for(exc), exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object", INVALID_PARAMS)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", INTERNAL_ERROR)

    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.get("/tools", tags=["system"])
    async def tools() -> dict:
        return {"tools": list_tools()}

    # --- searches -----------------------------------------------------------
    @app.post("/search_drugs", tags=["search"])
    async def search_drugs(payload: Optional[dict[str, Any]] = Body(default=None)) -> dict:
        return await run_tool("search_drugs", payload)

    @app.post("/search_companies", tags=["search"])
    async def search_companies(payload: Optional[dict[str, Any]] = Body(default=None)) -> dict:
        return await run_tool("search_companies", payload)

    @app.post("/search_deals", tags=["search"])
    async def search_deals(payload: Optional[dict[str, Any]] = Body(default=None)) -> dict:
        return await run_tool("search_deals", payload)

    @app.post("/explore_ontology", tags=["search"])
    async def explore_ontology(payload: Optional[dict[str, Any]] = Body(default=None)) -> dict:
        return await run_tool("explore_ontology", payload)

    # --- records ------------------------------------------------------------
    @app.get("/drug/{record_id}", tags=["records"])
    async def get_drug(record_id: str) -> dict:
        return await run_tool("get_drug", {"id": record_id})

    @app.get("/drug/{record_id}/swot", tags=["records"])
    async def get_drug_swot(record_id: str) -> dict:
        return await run_tool("get_drug_swot", {"id": record_id})

    @app.get("/drug/{record_id}/financial", tags=["records"])
    async def get_drug_financial(record_id: str) -> dict:
        return await run_tool("get_drug_financial", {"id": record_id})

    @app.get("/company/{record_id}", tags=["records"])
    async def get_company(record_id: str) -> dict:
        return await run_tool("get_company", {"id": record_id})

    return app
