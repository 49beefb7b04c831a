import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from agentca.backends.openssl import OpenSSLBackend
from agentca.crypto import DigestAlgorithm
from agentca.errors import CertificateNotFound, CryptoBackendError, SigningError, VerificationFailed

from conftest import (
    CA_SUBJECT, CLIENT_SUBJECT, DATA_DIR, FIXTURE_CERT, FIXTURE_SHA1, FIXTURE_SHA256, der_length, flip_der_byte,
    requires_openssl,
)


@pytest.fixture(scope="module")
def openssl():
    return OpenSSLBackend()


@pytest.fixture(scope="module")
def openssl_key(openssl):
    return openssl.gen_key(2048)


@requires_openssl
def test_key_generation(openssl_key):
    assert "PRIVATE KEY-----" in openssl_key


@requires_openssl
def test_key_generation_failure(openssl):
    with pytest.raises(CryptoBackendError):
        openssl.gen_key(-1)


@requires_openssl
def test_csr_roundtrip_with_python_backend(openssl, openssl_key, backend, client_csr):
    csr_text = openssl.gen_csr(openssl_key, CLIENT_SUBJECT)

    assert "-----BEGIN CERTIFICATE REQUEST-----" in csr_text
    openssl.verify_csr(csr_text)
    backend.verify_csr(csr_text)
    openssl.verify_csr(client_csr)

    csr = x509.load_pem_x509_csr(csr_text.encode("ascii"))
    assert csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "client.example.com"
    assert csr.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)[0].value == "foo@example.com"


@requires_openssl
def test_corrupted_csr_fails(openssl, client_csr):
    with pytest.raises(VerificationFailed):
        openssl.verify_csr(flip_der_byte(client_csr, der_length(client_csr) - 1))
    with pytest.raises(VerificationFailed):
        openssl.verify_csr("not a certificate request")


@requires_openssl
def test_self_signed_and_sign(openssl, openssl_key, client_csr):
    ca_cert_text = openssl.gen_self_signed(openssl_key, CA_SUBJECT, 30)
    cert_text = openssl.sign_csr(client_csr, ca_cert_text, openssl_key, 7, 10)

    ca_cert = x509.load_pem_x509_certificate(ca_cert_text.encode("ascii"))
    cert = x509.load_pem_x509_certificate(cert_text.encode("ascii"))
    assert ca_cert.issuer == ca_cert.subject
    assert cert.serial_number == 7
    assert cert.issuer == ca_cert.subject
    cert.verify_directly_issued_by(ca_cert)


@requires_openssl
def test_sign_failure(openssl, openssl_key):
    with pytest.raises(SigningError):
        openssl.sign_csr("garbage", "garbage", openssl_key, 1, 10)


@requires_openssl
def test_fingerprint(openssl):
    assert openssl.fingerprint(FIXTURE_CERT) == FIXTURE_SHA1
    assert openssl.fingerprint(FIXTURE_CERT, DigestAlgorithm.SHA256) == FIXTURE_SHA256

    with pytest.raises(CertificateNotFound):
        openssl.fingerprint(DATA_DIR / "nonexistent.crt")


@requires_openssl
def test_corrupted_newline_fails(openssl, client_csr):
    mangled = client_csr[:100] + chr(ord(client_csr[100]) + 1) + client_csr[101:]

    with pytest.raises(VerificationFailed):
        openssl.verify_csr(mangled)


def test_missing_binary(client_csr, client_key):
    missing = OpenSSLBackend(openssl="/nonexistent/openssl")

    with pytest.raises(CryptoBackendError):
        missing.verify_csr(client_csr)
    with pytest.raises(CryptoBackendError):
        missing.gen_csr(client_key, CLIENT_SUBJECT)
