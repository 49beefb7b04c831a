import base64
import shutil
import textwrap
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from agentca.authority import CertificateAuthority
from agentca.backends.pyca import CryptographyBackend
from agentca.config import AgentConfig
from agentca.context import AgentContext
from agentca.crypto import SubjectOptions


DATA_DIR = Path(__file__).parent / "data"

# Fixture certificate and its fingerprints as reported by `openssl x509 -fingerprint`
FIXTURE_CERT = DATA_DIR / "test.crt"
FIXTURE_SHA1 = "EF:E9:59:66:CB:17:05:F6:63:12:CE:20:BD:9E:B8:89:55:BD:33:11"
FIXTURE_SHA256 = (
    "99:28:E0:7A:9E:13:D9:05:BC:5B:2B:C3:17:7D:7E:3C:"
    "15:38:B9:25:C6:F7:DB:06:D3:1F:55:23:75:5D:62:40"
)

CA_SUBJECT = SubjectOptions(hostname="ca.example.com")
CLIENT_SUBJECT = SubjectOptions(hostname="client.example.com", email="foo@example.com")

requires_openssl = pytest.mark.skipif(shutil.which("openssl") is None, reason="openssl binary not installed")


def flip_der_byte(csr_text: str, index: int) -> str:
    """Re-encode `csr_text` with one byte of its DER form altered."""
    csr = x509.load_pem_x509_csr(csr_text.encode("ascii"))
    der = bytearray(csr.public_bytes(serialization.Encoding.DER))
    der[index] ^= 0x01
    body = "\n".join(textwrap.wrap(base64.b64encode(bytes(der)).decode("ascii"), 64))
    return f"-----BEGIN CERTIFICATE REQUEST-----\n{body}\n-----END CERTIFICATE REQUEST-----\n"


def der_length(csr_text: str) -> int:
    csr = x509.load_pem_x509_csr(csr_text.encode("ascii"))
    return len(csr.public_bytes(serialization.Encoding.DER))


@pytest.fixture(scope="session")
def backend():
    return CryptographyBackend()


@pytest.fixture(scope="session")
def client_key(backend):
    return backend.gen_key(2048)


@pytest.fixture(scope="session")
def client_csr(backend, client_key):
    return backend.gen_csr(client_key, CLIENT_SUBJECT)


@pytest.fixture
def authority(tmp_path, backend):
    ca = CertificateAuthority(tmp_path / "ca", backend)
    ca.initialize(CA_SUBJECT, key_bits=2048)
    return ca


@pytest.fixture
def ctx(tmp_path):
    config = AgentConfig(data_dir=tmp_path / "data", workers=8)
    context = AgentContext(config)
    context.authority.initialize(CA_SUBJECT, key_bits=2048)
    yield context
    context.close()
