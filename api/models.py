from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional

from core.payload import PartyInfo, RemittanceRequest # re-exported as the write request body

# --- API Request/Response Models (using Pydantic) ---

class SubmitResponse(BaseModel):
    """Response model for the remittance submission endpoint. Hashes are anchored on-chain by the caller."""
    destinationIdentity: str = Field(..., description="Ledger address of the receiving bank")
    blobHash: str = Field(..., description="keccak256 of the encrypted blob (0x-prefixed)")
    keyCommitment: str = Field(..., description="keccak256 of the wrapped AES key (0x-prefixed)")
    blobLocation: str = Field(..., description="Object-store path of the encrypted blob")

class DecryptRequest(BaseModel):
    """Request model for the decrypt endpoint. Fields are optional so missing input maps to a 400."""
    model_config = ConfigDict(populate_by_name=True)

    commitmentHash: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("commitmentHash", "metaHash"),
        description="blobHash read from the ledger order",
    )
    privateKey: Optional[str] = Field(None, description="Recipient RSA private key (PEM). Required in caller-key mode.")
    bankCode: Optional[str] = Field(None, description="Receiving bank code for server-side key mode")

class AnchorRequest(BaseModel):
    """Request model for anchoring a commitment on the development ledger."""
    blobHash: str
    keyCommitment: str
    amount: int = Field(..., gt=0)
    destination: str
    source: Optional[str] = None
    expiry: Optional[int] = Field(None, description="Unix seconds; defaults to now + order TTL")

class AnchorResponse(BaseModel):
    id: int
    expiry: int

class ReceivedOrder(BaseModel):
    id: int
    source: str
    destination: str
    commitmentHash: str
    keyCommitment: str
    amount: int
    expiry: int

class ReceivedOrdersResponse(BaseModel):
    destination: str
    orders: List[ReceivedOrder]

class ErrorResponse(BaseModel):
    error: str
    kind: str


__all__ = [
    "PartyInfo", "RemittanceRequest", "SubmitResponse", "DecryptRequest",
    "AnchorRequest", "AnchorResponse", "ReceivedOrder", "ReceivedOrdersResponse", "ErrorResponse",
]
