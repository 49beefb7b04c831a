import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from ..backend import Backend
from ..crypto import DigestAlgorithm, SubjectOptions, format_fingerprint
from ..errors import CertificateNotFound, CryptoBackendError, SigningError, VerificationFailed


logger = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537

_DIGESTS = {
    DigestAlgorithm.MD5: hashes.MD5,
    DigestAlgorithm.SHA1: hashes.SHA1,
    DigestAlgorithm.SHA256: hashes.SHA256,
    DigestAlgorithm.SHA512: hashes.SHA512,
}


class CryptographyBackend(Backend):
    name = "cryptography"

    def gen_key(self, bits: int) -> str:
        logger.debug("Generating %d bit RSA key", bits)
        try:
            key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)
        except (ValueError, TypeError) as e:
            raise CryptoBackendError(f"Failed to generate {bits} bit key: {e}") from e

        return key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    def gen_csr(self, private_key: str, subject: SubjectOptions) -> str:
        key = self._load_key(private_key, CryptoBackendError)
        try:
            csr = x509.CertificateSigningRequestBuilder().subject_name(
                self._build_name(subject)
            ).sign(key, hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise CryptoBackendError(f"Failed to generate CSR: {e}") from e

        return csr.public_bytes(serialization.Encoding.PEM).decode("ascii")

    def verify_csr(self, csr_text: str) -> None:
        try:
            csr = x509.load_pem_x509_csr(csr_text.encode("ascii"))
            valid = csr.is_signature_valid
            canonical = csr.public_bytes(serialization.Encoding.PEM).decode("ascii")
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm, x509.InvalidVersion) as e:
            raise VerificationFailed(f"Unreadable certificate request: {e}") from e

        # the PEM parser skips stray bytes between lines, so compare the text too
        if csr_text.replace("\r\n", "\n").rstrip("\n") != canonical.rstrip("\n"):
            raise VerificationFailed("Certificate request text does not match its encoded contents")

        if not valid:
            raise VerificationFailed("Certificate request signature does not match its public key")

    def gen_self_signed(self, private_key: str, subject: SubjectOptions, validity_days: int) -> str:
        key = self._load_key(private_key, CryptoBackendError)
        name = self._build_name(subject)
        start_date = datetime.now(timezone.utc)

        try:
            cert = x509.CertificateBuilder().subject_name(
                name
            ).issuer_name(
                name
            ).public_key(
                key.public_key()
            ).serial_number(
                x509.random_serial_number()
            ).not_valid_before(
                start_date
            ).not_valid_after(
                start_date + timedelta(days=validity_days)
            ).add_extension(
                x509.BasicConstraints(ca=True, path_length=None), critical=True
            ).add_extension(
                x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
            ).sign(key, hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise CryptoBackendError(f"Failed to generate self-signed certificate: {e}") from e

        return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

    def sign_csr(self, csr_text: str, ca_cert: str, ca_key: str, serial: int, validity_days: int) -> str:
        try:
            csr = x509.load_pem_x509_csr(csr_text.encode("ascii"))
            authority = x509.load_pem_x509_certificate(ca_cert.encode("ascii"))
            public_key = csr.public_key()
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm, x509.InvalidVersion) as e:
            raise SigningError(f"Malformed signing input: {e}") from e

        key = self._load_key(ca_key, SigningError)
        start_date = datetime.now(timezone.utc)

        try:
            cert = x509.CertificateBuilder().subject_name(
                csr.subject
            ).issuer_name(
                authority.subject
            ).public_key(
                public_key
            ).serial_number(
                serial
            ).not_valid_before(
                start_date
            ).not_valid_after(
                start_date + timedelta(days=validity_days)
            ).add_extension(
                x509.BasicConstraints(ca=False, path_length=None), critical=True
            ).add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key()), critical=False
            ).sign(key, hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise SigningError(f"Failed to sign certificate with serial {serial}: {e}") from e

        return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

    def fingerprint(self, cert_path: Path, digest: DigestAlgorithm = DigestAlgorithm.SHA1) -> str:
        try:
            data = Path(cert_path).read_bytes()
        except OSError as e:
            raise CertificateNotFound(f"No readable certificate at {cert_path}") from e

        try:
            if b"-----BEGIN CERTIFICATE-----" in data:
                cert = x509.load_pem_x509_certificate(data)
            else:
                cert = x509.load_der_x509_certificate(data)
        except ValueError as e:
            raise CertificateNotFound(f"{cert_path} does not hold a certificate") from e

        return format_fingerprint(cert.fingerprint(_DIGESTS[digest]()))

    def _load_key(self, private_key: str, error_cls):
        try:
            return serialization.load_pem_private_key(private_key.encode("ascii"), password=None)
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as e:
            raise error_cls(f"Unreadable private key: {e}") from e

    def _build_name(self, subject: SubjectOptions) -> x509.Name:
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, subject.hostname)]
        if subject.email:
            attributes.append(x509.NameAttribute(NameOID.EMAIL_ADDRESS, subject.email))
        return x509.Name(attributes)
