# --- File: api/endpoints.py ---
from fastapi import Body, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from typing import Optional
from api.models import (
    AnchorRequest, AnchorResponse, DecryptRequest, ReceivedOrder, ReceivedOrdersResponse,
    RemittanceRequest, SubmitResponse,
)
from core.ledger import InMemoryLedger, LedgerClient, default_expiry, discover_commitments
from core.store import EnvelopeStore
from envelope_crypto import normalize_commitment_hash
from errors import ValidationError
from security.envelope_service import EnvelopeService
from security.key_manager import KeyManager
import config
import logging

# --- Dependency Injection Setup ---
# Global instances, primarily set by lifespan in main.py
_envelope_store_instance: Optional[EnvelopeStore] = None
_key_manager_instance: Optional[KeyManager] = None
_envelope_service_instance: Optional[EnvelopeService] = None
_ledger_client_instance: Optional[LedgerClient] = None


def get_envelope_service() -> EnvelopeService:
    global _envelope_service_instance
    if _envelope_service_instance is None:
        logging.error("EnvelopeService instance was None! This should have been set by lifespan.")
        raise HTTPException(status_code=503, detail="Envelope service not available.")
    return _envelope_service_instance

def get_ledger_client() -> LedgerClient:
    global _ledger_client_instance
    if _ledger_client_instance is None:
        logging.warning("LedgerClient instance was None, falling back to an in-memory ledger.")
        _ledger_client_instance = InMemoryLedger()
    return _ledger_client_instance

# --- API Endpoints ---

async def submit_remittance(
    remittance_request: RemittanceRequest = Body(...),
    service: EnvelopeService = Depends(get_envelope_service),
):
    logging.info(f"Received remittance submission: corridor={remittance_request.corridorBankCode}")
    result = await run_in_threadpool(service.submit, remittance_request)
    return SubmitResponse(
        destinationIdentity=result.destination_identity,
        blobHash=result.blob_hash,
        keyCommitment=result.key_commitment,
        blobLocation=result.blob_location,
    )

async def decrypt_remittance(
    decrypt_request: DecryptRequest = Body(...),
    service: EnvelopeService = Depends(get_envelope_service),
):
    if not decrypt_request.commitmentHash:
        raise ValidationError("commitmentHash is required.")
    # fail fast on a malformed hash, before any key handling or lookup
    commitment_hash = normalize_commitment_hash(decrypt_request.commitmentHash)
    logging.info(f"Received decrypt request for {commitment_hash[:18]}... (key source: {config.RAILX_DECRYPT_KEY_SOURCE})")

    if config.RAILX_DECRYPT_KEY_SOURCE == "config":
        bank_code = decrypt_request.bankCode or config.RAILX_DEFAULT_BANK_CODE
        return await run_in_threadpool(service.open_for_bank, commitment_hash, bank_code)

    if not decrypt_request.privateKey or not decrypt_request.privateKey.strip():
        raise ValidationError("commitmentHash and privateKey are both required.")
    return await run_in_threadpool(service.open, commitment_hash, decrypt_request.privateKey)

async def anchor_commitment(
    anchor_request: AnchorRequest = Body(...),
    ledger: LedgerClient = Depends(get_ledger_client),
):
    expiry = anchor_request.expiry or default_expiry()
    order_id = ledger.submit_commitment(
        anchor_request.blobHash,
        anchor_request.keyCommitment,
        anchor_request.amount,
        anchor_request.destination,
        expiry,
        source=anchor_request.source or config.ZERO_ADDRESS,
    )
    return AnchorResponse(id=order_id, expiry=expiry)

async def list_received_orders(
    destination: str,
    from_id: int = 0,
    ledger: LedgerClient = Depends(get_ledger_client),
):
    logging.info(f"Received order discovery request for destination: {destination}")
    orders = discover_commitments(ledger, destination, from_id=from_id)
    return ReceivedOrdersResponse(
        destination=destination,
        orders=[ReceivedOrder(**o) for o in orders],
    )
