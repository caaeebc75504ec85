from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from api import endpoints
from api.models import AnchorResponse, ErrorResponse, ReceivedOrdersResponse, SubmitResponse
from core.ledger import InMemoryLedger
from core.store import EnvelopeStore
from contextlib import asynccontextmanager
import uvicorn
import logging
import os
import config # Your config file

from errors import EnvelopeError
from security.envelope_service import EnvelopeService
from security.key_manager import KeyManager


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logging.info("Application startup sequence initiated...")

    if endpoints._key_manager_instance is None:
        logging.info("Lifespan: Initializing KeyManager...")
        endpoints._key_manager_instance = KeyManager(key_file_path=config.RAILX_BANK_KEYS_FILE)

    if endpoints._envelope_store_instance is None:
        logging.info("Lifespan: Initializing EnvelopeStore...")
        try:
            endpoints._envelope_store_instance = EnvelopeStore.from_config()
        except EnvelopeError:
            logging.critical("Lifespan: CRITICAL - EnvelopeStore failed to initialize. Submissions and decrypts will fail.")

    if endpoints._envelope_service_instance is None and endpoints._envelope_store_instance is not None:
        logging.info("Lifespan: Initializing EnvelopeService...")
        endpoints._envelope_service_instance = EnvelopeService(
            store=endpoints._envelope_store_instance,
            key_manager=endpoints._key_manager_instance,
        )

    if endpoints._ledger_client_instance is None:
        logging.warning("Lifespan: No ledger client configured. Using the in-memory development ledger.")
        endpoints._ledger_client_instance = InMemoryLedger()

    logging.info("All components pre-initialized via lifespan.")

    yield

    # --- Shutdown ---
    logging.info("Application shutdown sequence initiated...")
    if endpoints._envelope_store_instance:
        endpoints._envelope_store_instance.close()
        logging.info("Envelope store resources released.")
    logging.info("Application shutdown complete.")

app = FastAPI(
    title="RailX Remittance Envelope API",
    description="API for encrypting remittance/KYC payloads into ledger-anchored envelopes and decrypting them for the receiving bank.",
    version="0.1.0",
    lifespan=lifespan
)

origins = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173").split(",")
logging.info(f"CORS allowed origins: {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

@app.exception_handler(EnvelopeError)
async def envelope_exception_handler(request: Request, exc: EnvelopeError):
    logging.error(f"Envelope Error: kind={exc.kind}, Status Code={exc.http_status}, Path: {request.url.path}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()})
    logging.error(f"Request Validation Error: fields={fields}, Path: {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request fields: {', '.join(f for f in fields if f) or 'body'}", "kind": "validation_error"},
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logging.error(f"HTTP Exception: Status Code={exc.status_code}, Detail={exc.detail}, Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": f"An error occurred: {exc.detail}", "kind": "http_error"},
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logging.error(f"Unhandled Exception at Path {request.url.path}: {type(exc).__name__}")
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected internal server error occurred. Please check server logs.", "kind": "internal_error"},
    )

_error_responses = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}

app.post(
    "/remittances", response_model=SubmitResponse, summary="Encrypt and Store a Remittance Payload",
    tags=["Envelopes"], responses={**_error_responses, 409: {"model": ErrorResponse}}
)(endpoints.submit_remittance)

app.post(
    "/remittances/decrypt", summary="Decrypt a Remittance Payload by Commitment Hash",
    tags=["Envelopes"], responses=_error_responses
)(endpoints.decrypt_remittance)

app.post(
    "/orders", response_model=AnchorResponse, summary="Anchor a Commitment on the Development Ledger",
    tags=["Ledger"], responses=_error_responses
)(endpoints.anchor_commitment)

app.get(
    "/orders/{destination}", response_model=ReceivedOrdersResponse, summary="List Commitments Addressed to a Destination",
    tags=["Ledger"], responses=_error_responses
)(endpoints.list_received_orders)

@app.get("/health", summary="Health check", tags=["General"])
async def health():
    return {"status": "ok", "decryptKeySource": config.RAILX_DECRYPT_KEY_SOURCE}

@app.get("/", summary="Root endpoint", tags=["General"], include_in_schema=False)
async def read_root():
    return {"message": "RailX Remittance Envelope API. See /docs for details."}

if __name__ == "__main__":
    logging.info("Starting RailX Remittance Envelope API server using Uvicorn...")

    log_level = os.getenv("LOG_LEVEL", "info").lower()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = os.getenv("RELOAD", "false").lower() == "true"

    logging.info(f"Server starting on {host}:{port} with log level {log_level} and reload {'enabled' if reload_enabled else 'disabled'}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        log_level=log_level,
        reload=reload_enabled
    )
