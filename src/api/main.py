"""
FastAPI backend: identity reconciliation REST API.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from idlink.application import (
    IdentifyRequest,
    IdentityError,
    IdentityService,
    Invalid,
)
from idlink.domain import ConsolidatedContact
from idlink.infrastructure import (
    InMemoryContactStore,
    Neo4jContactStore,
    email_key,
    ensure_contact_schema,
    phone_normalizer,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

STORE_MEMORY = "memory"
STORE_NEO4J = "neo4j"
INTERNAL_ERROR_DETAIL = "An internal error occurred while processing your request"


def _store_kind() -> str:
    return os.environ.get("IDLINK_STORE", STORE_NEO4J).strip().lower() or STORE_NEO4J


def _default_region() -> str | None:
    return os.environ.get("IDLINK_DEFAULT_REGION", "").strip().upper() or None


def _get_driver():
    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    return GraphDatabase.driver(uri, auth=(user, password))


def _build_service(app: FastAPI) -> IdentityService:
    if _store_kind() == STORE_MEMORY:
        store = InMemoryContactStore()
    else:
        if getattr(app.state, "driver", None) is None:
            app.state.driver = _get_driver()
            ensure_contact_schema(app.state.driver)
        store = Neo4jContactStore(app.state.driver)
    return IdentityService(
        store,
        normalize_email=email_key,
        normalize_phone=phone_normalizer(_default_region()),
    )


def get_service(request: Request) -> IdentityService:
    app = request.app
    if getattr(app.state, "service", None) is None:
        app.state.service = _build_service(app)
    return app.state.service


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    app.state.service = None
    logger.info("Contact store: %s", _store_kind())
    try:
        app.state.service = _build_service(app)
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()


app = FastAPI(title="idlink API", lifespan=lifespan)


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError):
    logger.error(
        "Error processing %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": INTERNAL_ERROR_DETAIL})


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: identify ---


class IdentifyBody(BaseModel):
    email: str | None = None
    phoneNumber: str | int | None = None


class ContactView(BaseModel):
    primaryContactId: int
    emails: list[str]
    phoneNumbers: list[str]
    secondaryContactIds: list[int]


class IdentifyResponse(BaseModel):
    contact: ContactView


def _to_response(view: ConsolidatedContact) -> IdentifyResponse:
    return IdentifyResponse(
        contact=ContactView(
            primaryContactId=view.primary_contact_id,
            emails=list(view.emails),
            phoneNumbers=list(view.phone_numbers),
            secondaryContactIds=list(view.secondary_contact_ids),
        )
    )


@app.post("/identify", response_model=IdentifyResponse)
def identify(
    body: IdentifyBody,
    service: IdentityService = Depends(get_service),
):
    result = service.identify(
        IdentifyRequest(email=body.email, phone_number=body.phoneNumber)
    )
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    return _to_response(result)


@app.get("/contacts/{contact_id}", response_model=IdentifyResponse)
def get_contact_cluster(
    contact_id: int,
    service: IdentityService = Depends(get_service),
):
    view = service.get_cluster(contact_id)
    if view is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return _to_response(view)
