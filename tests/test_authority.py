import shutil
import subprocess

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from agentca.authority import CertificateAuthority
from agentca.errors import ResourceExists, ResourceNotFound, SigningError

from conftest import CA_SUBJECT, CLIENT_SUBJECT, requires_openssl


def test_initialize_layout(authority):
    assert authority.is_initialized()
    assert sorted(p.name for p in authority.path.iterdir()) == ["ca.crt", "ca.key", "ca.srl"]
    assert authority.key_path.stat().st_mode & 0o777 == 0o600
    assert authority.serials.peek() == 1


def test_initialize_twice_fails(authority):
    with pytest.raises(ResourceExists):
        authority.initialize(CA_SUBJECT)


def test_sign_without_ca(tmp_path, backend, client_csr):
    ca = CertificateAuthority(tmp_path / "empty", backend)

    assert not ca.is_initialized()
    with pytest.raises(ResourceNotFound):
        ca.sign(client_csr)


def test_failed_signing_burns_the_serial(authority):
    with pytest.raises(SigningError):
        authority.sign("garbage")

    assert authority.serials.peek() == 2


def test_end_to_end(authority, backend, client_csr, tmp_path):
    issued = authority.sign(client_csr)
    assert issued.serial == 1

    cert = x509.load_pem_x509_certificate(issued.certificate.encode("ascii"))
    ca_cert = x509.load_pem_x509_certificate(authority.certificate().encode("ascii"))

    assert cert.serial_number == 1
    assert cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "client.example.com"
    assert cert.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)[0].value == "foo@example.com"
    assert cert.issuer.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "ca.example.com"
    cert.verify_directly_issued_by(ca_cert)


@requires_openssl
def test_openssl_verifies_issued_certificate(authority, client_csr, tmp_path):
    cert_path = tmp_path / "client.crt"
    cert_path.write_text(authority.sign(client_csr).certificate)

    out = subprocess.run(
        [shutil.which("openssl"), "verify", "-CAfile", str(authority.cert_path), str(cert_path)],
        capture_output=True, text=True,
    )
    assert out.returncode == 0, out.stderr
    assert "OK" in out.stdout

    out = subprocess.run(
        [shutil.which("openssl"), "x509", "-noout", "-serial", "-in", str(cert_path)],
        capture_output=True, text=True,
    )
    assert out.stdout.strip() == "serial=01"


def test_issue_identity(authority):
    identity = authority.issue_identity(CLIENT_SUBJECT, key_bits=2048)

    assert identity.serial == 1
    assert "PRIVATE KEY" in identity.private_key
    cert = x509.load_pem_x509_certificate(identity.certificate.encode("ascii"))
    csr = x509.load_pem_x509_csr(identity.csr.encode("ascii"))
    assert cert.subject == csr.subject
    assert cert.public_key().public_numbers() == csr.public_key().public_numbers()


def test_fingerprint(authority, backend):
    assert authority.fingerprint() == backend.fingerprint(authority.cert_path)
    assert len(authority.fingerprint().split(":")) == 20
