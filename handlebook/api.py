"""
Handlebook HTTP service.

FastAPI application exposing handle claim and lookup. Request dispatch,
body validation and status-code mapping live here; the claim and lookup
semantics live in ClaimService and LookupService.

Run with:
    handlebook
    uvicorn handlebook.api:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .claims import ClaimService
from .config import HandlebookConfig
from .errors import ERROR_MESSAGES, ErrorKind, RateLimitExceeded, StoreError
from .lookup import LookupService
from .models import ClaimRequest
from .rate_limiter import RateGovernor
from .registry import HandleRegistry
from .signatures import SignatureVerifier, is_valid_address
from .store import HandleStore, create_store

logger = logging.getLogger(__name__)

LOOKUP_CACHE_CONTROL = "public, max-age=300"


# =====================================================================
# Service State
# =====================================================================

class HandlebookService:
    """Components wired around one store."""

    def __init__(self, config: HandlebookConfig, store: HandleStore):
        self.config = config
        self.store = store
        self.registry = HandleRegistry(store)
        self.governor = RateGovernor(store)
        self.verifier = SignatureVerifier()
        self.claims = ClaimService(
            registry=self.registry,
            governor=self.governor,
            verifier=self.verifier,
            app_name=config.app_name,
            rate_limit=config.claim_rate_limit,
            rate_window=config.claim_rate_window
        )
        self.lookup = LookupService(self.registry)


def get_service(request: Request) -> HandlebookService:
    """FastAPI dependency returning the service wired at start-up."""
    return request.app.state.service


def caller_identity(request: Request, trusted_proxies: int = 0) -> str:
    """
    Identify the caller for rate limiting.

    Each trusted proxy appends the peer it saw to X-Forwarded-For, so the
    entry trusted_proxies places from the right is the client address our
    outermost proxy observed. Entries left of it are caller-supplied and
    ignored. With no trusted proxies, or a header too short to hold that
    entry, the socket peer is used, then "unknown".
    """
    if trusted_proxies > 0:
        forwarded = request.headers.get("x-forwarded-for", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if len(hops) >= trusted_proxies:
            return hops[-trusted_proxies]

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def admit_claim(request: Request, service: HandlebookService = Depends(get_service)) -> str:
    """
    Count a claim attempt for the caller and return its identity.

    Runs as a dependency, ahead of body validation: malformed bodies count
    against the window too.

    Raises:
        RateLimitExceeded: If the caller is over its limit or the store is down
    """
    identity = caller_identity(request, service.config.trusted_proxies)
    if not service.claims.admit(identity):
        raise RateLimitExceeded(identity)
    return identity


def error_response(
    kind: ErrorKind,
    message: Optional[str] = None,
    code: Optional[str] = None,
    status_code: Optional[int] = None,
    **extra: Any
) -> JSONResponse:
    """Build an {error, code} JSON error body."""
    body: Dict[str, Any] = {
        "error": message or ERROR_MESSAGES[kind],
        "code": code or kind.code,
    }
    body.update(extra)
    return JSONResponse(status_code=status_code or kind.status_code, content=body)


# =====================================================================
# API Endpoints
# =====================================================================

router = APIRouter()


@router.get("/health")
def health_check(service: HandlebookService = Depends(get_service)):
    """Health check: reports whether the store answers."""
    store_ok = service.store.ping()
    content = {
        "status": "healthy" if store_ok else "degraded",
        "service": "handlebook",
        "store": service.config.store,
    }
    return JSONResponse(status_code=200 if store_ok else 503, content=content)


@router.post("/api/v1/handles/claim")
def claim_handle(
    claim: ClaimRequest,
    identity: str = Depends(admit_claim),
    service: HandlebookService = Depends(get_service)
):
    """
    Claim a unique handle for a wallet address.

    The wallet must have signed "I claim @{handle} on {app_name}".

    Responses: 200 claimed, 400 invalid body, 401 invalid signature,
    409 taken, 429 rate limited, 500 internal error.
    """
    result = service.claims.claim(claim, identity, admitted=True)

    if result.success:
        return {
            "success": True,
            "handle": result.handle,
            "ownerAddress": result.owner_address,
        }

    return error_response(result.error_kind)


@router.get("/api/v1/handles")
def lookup_handle_query(username: Optional[str] = None, service: HandlebookService = Depends(get_service)):
    """Query-string form of handle lookup (?username=alice)."""
    if not username:
        return error_response(
            ErrorKind.VALIDATION_ERROR,
            message="Username parameter required",
            code="MISSING_USERNAME"
        )
    return _lookup(username, service)


@router.get("/api/v1/handles/{handle}")
def lookup_handle(handle: str, service: HandlebookService = Depends(get_service)):
    """Resolve a handle ("alice" or "@alice") to its owner address."""
    return _lookup(handle, service)


def _lookup(raw_handle: str, service: HandlebookService):
    try:
        view = service.lookup.resolve(raw_handle)
    except StoreError as e:
        logger.error(f"Error looking up handle '{raw_handle}': {e}", exc_info=True)
        return error_response(ErrorKind.INTERNAL_ERROR)

    if view is None:
        return error_response(
            ErrorKind.VALIDATION_ERROR,
            message="Username not found. Check spelling or use wallet address.",
            code="USERNAME_NOT_FOUND",
            status_code=404
        )

    return JSONResponse(
        content=view.model_dump(mode="json", by_alias=True),
        headers={"Cache-Control": LOOKUP_CACHE_CONTROL}
    )


@router.get("/api/v1/handles/{handle}/availability")
def handle_availability(handle: str, service: HandlebookService = Depends(get_service)):
    """Check whether a handle is free; suggests alternatives when taken."""
    try:
        result = service.lookup.check_availability(handle)
    except ValueError as e:
        return error_response(ErrorKind.VALIDATION_ERROR, message=str(e))
    except StoreError as e:
        logger.error(f"Error checking availability of '{handle}': {e}", exc_info=True)
        return error_response(ErrorKind.INTERNAL_ERROR)

    return result.model_dump(mode="json")


@router.get("/api/v1/addresses/{address}/handles")
def address_handles(address: str, service: HandlebookService = Depends(get_service)):
    """List the handles claimed by an address."""
    if not is_valid_address(address):
        return error_response(ErrorKind.VALIDATION_ERROR, message="Invalid Ethereum address")

    try:
        result = service.lookup.handles_for_address(address)
    except StoreError as e:
        logger.error(f"Error listing handles for {address}: {e}", exc_info=True)
        return error_response(ErrorKind.INTERNAL_ERROR)

    return result.model_dump(mode="json", by_alias=True)


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Report an exhausted claim window as 429."""
    return error_response(ErrorKind.RATE_LIMIT_ERROR)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 VALIDATION_ERROR."""
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    logger.info(f"Rejected invalid request to {request.url.path}: {len(details)} error(s)")
    return error_response(ErrorKind.VALIDATION_ERROR, details=details)


# =====================================================================
# FastAPI Application
# =====================================================================

def create_app(config: Optional[HandlebookConfig] = None, store: Optional[HandleStore] = None) -> FastAPI:
    """
    Build the Handlebook application.

    Args:
        config: Settings (defaults to HandlebookConfig.from_env())
        store: Store backend; when omitted one is created from config at start-up
    """
    config = config or HandlebookConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle management."""
        logger.info("Starting Handlebook service...")
        if app.state.service is None:
            app.state.service = HandlebookService(config, create_store(config))
        yield
        logger.info("Shutting down Handlebook service...")

    app = FastAPI(
        title="Handlebook",
        description="Wallet-signed @handle claims and lookups",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.service = HandlebookService(config, store) if store is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.include_router(router)

    return app


def main() -> None:
    """Console entry point: run the service under uvicorn."""
    import uvicorn

    config = HandlebookConfig.from_env()
    logging.basicConfig(level=config.log_level)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
