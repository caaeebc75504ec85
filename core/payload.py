# --- File: core/payload.py ---
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from typing import Dict, Any, Optional, Union
from datetime import datetime, timezone
import config
import json
import logging
import uuid

from errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

SANCTIONS_KYC_LISTS = ["OFAC", "UN", "EU"]
SANCTIONS_KYT_LISTS = ["OFAC_ADDR", "EXCHANGE_BLACKLIST"]

# --- Source Models ---

class PartyInfo(BaseModel):
    """Originator or beneficiary identity as submitted by the sending bank."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Legal name of the party")
    nationality: str = Field(..., description="ISO 3166 country code (e.g., 'KR')")
    birthDate: str = Field(..., description="Date of birth, YYYY-MM-DD")


class RemittanceRequest(BaseModel):
    """Source fields of a remittance; everything else in the payload is derived from these."""
    model_config = ConfigDict(frozen=True)

    originator: PartyInfo
    beneficiary: PartyInfo
    amountKRW: int = Field(..., strict=True, description="Amount in KRW, positive integer (JSON number only)")
    beneficiaryAccount: str = Field(..., description="Destination account number")
    corridorBankCode: str = Field(..., description="Corridor bank code (e.g., 'J_BANK')")


class RemittancePayload(BaseModel):
    """
    Plaintext of an envelope. Field order is the serialization order, so it must not change
    without bumping ``version``.
    """
    model_config = ConfigDict(frozen=True)

    originator: PartyInfo
    beneficiary: PartyInfo
    amountKRW: int
    beneficiaryAccount: str
    corridorBankCode: str

    iso20022: Dict[str, Any]
    ivms101: Dict[str, Any]
    zkp: Dict[str, Any]

    createdAt: str
    version: str


# --- Regulatory Projections ---

def _iso20022_view(request: RemittanceRequest, tx_id: str, now_iso: str) -> Dict[str, Any]:
    """pacs.008 style settlement message."""
    return {
        "messageType": "pacs.008.001.10",
        "txId": tx_id,
        "creationDateTime": now_iso,
        "debtor": {
            "name": request.originator.name,
            "country": request.originator.nationality,
            "birthDate": request.originator.birthDate,
        },
        "creditor": {
            "name": request.beneficiary.name,
            "country": request.beneficiary.nationality,
            "birthDate": request.beneficiary.birthDate,
        },
        "interbankSettlementAmount": {"ccy": "KRW", "amount": request.amountKRW},
        "debtorAccount": {"type": "INTERNAL_KRW"},
        "creditorAccount": {
            "accountNumber": request.beneficiaryAccount,
            "accountType": "BENEFICIARY",
        },
        "corridorBankCode": request.corridorBankCode,
    }


def _ivms101_party(party: PartyInfo) -> Dict[str, Any]:
    return {
        "name": [{"nameIdentifier": party.name, "nameIdentifierType": "LEGL"}],
        "dateAndPlaceOfBirth": {"dateOfBirth": party.birthDate},
        "nationalIdentification": {"countryOfIssue": party.nationality},
    }


def _ivms101_view(request: RemittanceRequest) -> Dict[str, Any]:
    """IVMS101 travel-rule identity view."""
    return {
        "originator": _ivms101_party(request.originator),
        "beneficiary": _ivms101_party(request.beneficiary),
        "amount": {"currency": "KRW", "amount": request.amountKRW},
        "beneficiaryAccountNumber": request.beneficiaryAccount,
    }


def _zkp_view(now_iso: str) -> Dict[str, Any]:
    # Attestation slots; proof material (circuit id, public input hash) is not produced yet.
    return {
        "sanctionsKyc": {
            "type": "Proof_Sanctions_KYC",
            "status": "VALID",
            "checkedLists": list(SANCTIONS_KYC_LISTS),
            "createdAt": now_iso,
        },
        "sanctionsKyt": {
            "type": "Proof_Sanctions_KYT",
            "status": "VALID",
            "checkedLists": list(SANCTIONS_KYT_LISTS),
            "createdAt": now_iso,
        },
    }


def _to_iso(dt: datetime) -> str:
    """UTC, millisecond precision, 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# --- Builder ---

def parse_request(raw: Union[RemittanceRequest, Dict[str, Any]]) -> RemittanceRequest:
    """Validates shape and values of a remittance request."""
    if isinstance(raw, RemittanceRequest):
        request = raw
    elif isinstance(raw, dict):
        try:
            request = RemittanceRequest.model_validate(raw)
        except PydanticValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ValidationError(f"Invalid remittance request fields: {', '.join(fields)}") from None
    else:
        raise ValidationError("Remittance request must be a JSON object.")

    if not request.originator.name.strip() or not request.beneficiary.name.strip():
        raise ValidationError("Originator and beneficiary names are required.")
    if request.amountKRW <= 0:
        raise ValidationError("amountKRW must be a positive number.")
    return request


def build_payload(
    raw_request: Union[RemittanceRequest, Dict[str, Any]],
    tx_id: Optional[str] = None,
    now: Optional[datetime] = None,
    version: str = config.RAILX_PAYLOAD_VERSION,
) -> RemittancePayload:
    """
    Assembles the canonical payload. ``tx_id`` and ``now`` are the only non-deterministic
    inputs; pass them to get byte-identical output.
    """
    request = parse_request(raw_request)
    tx_id = tx_id or str(uuid.uuid4())
    now_iso = _to_iso(now or datetime.now(timezone.utc))

    payload = RemittancePayload(
        originator=request.originator,
        beneficiary=request.beneficiary,
        amountKRW=request.amountKRW,
        beneficiaryAccount=request.beneficiaryAccount,
        corridorBankCode=request.corridorBankCode,
        iso20022=_iso20022_view(request, tx_id, now_iso),
        ivms101=_ivms101_view(request),
        zkp=_zkp_view(now_iso),
        createdAt=now_iso,
        version=version,
    )
    logger.debug(f"Built remittance payload (corridor={request.corridorBankCode}, version={version}).")
    return payload


def serialize_payload(payload: RemittancePayload) -> bytes:
    """Compact UTF-8 JSON in declared field order."""
    return payload.model_dump_json().encode("utf-8")


def deserialize_payload(plaintext_bytes: bytes) -> Dict[str, Any]:
    try:
        return json.loads(plaintext_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.error("Decrypted payload is not valid JSON.")
        raise AuthenticationError("Authentication failed") from None
