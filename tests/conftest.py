from datetime import datetime, timezone

import pytest

from core.store import EnvelopeStore, ObjectStore, RecordTable
from envelope_crypto import generate_rsa_keypair
from security.envelope_service import EnvelopeService
from security.key_manager import KeyManager

J_BANK_ADDRESS = "0x1111111111111111111111111111111111111111"
FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
FIXED_TX_ID = "00000000-0000-4000-8000-000000000001"


@pytest.fixture(scope="session")
def rsa_keypair():
    return generate_rsa_keypair()


@pytest.fixture(scope="session")
def other_rsa_keypair():
    return generate_rsa_keypair()


@pytest.fixture
def remittance_body():
    return {
        "originator": {"name": "A", "nationality": "KR", "birthDate": "1990-01-01"},
        "beneficiary": {"name": "B", "nationality": "JP", "birthDate": "1991-02-02"},
        "amountKRW": 10000,
        "beneficiaryAccount": "123-456",
        "corridorBankCode": "J_BANK",
    }


@pytest.fixture
def store(tmp_path):
    envelope_store = EnvelopeStore(
        ObjectStore(str(tmp_path / "objects")),
        RecordTable(str(tmp_path / "records.db")),
    )
    yield envelope_store
    envelope_store.close()


@pytest.fixture
def key_manager(rsa_keypair, tmp_path):
    public_pem, private_pem = rsa_keypair
    return KeyManager(
        key_file_path=str(tmp_path / "keys.json"),
        bank_keys={"J_BANK": {"public_pem": public_pem, "private_pem": private_pem}},
        bank_addresses={"J_BANK": J_BANK_ADDRESS},
    )


@pytest.fixture
def service(store, key_manager):
    return EnvelopeService(store=store, key_manager=key_manager)
