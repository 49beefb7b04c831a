import logging
from pathlib import Path
from subprocess import CalledProcessError, check_output, run, PIPE, STDOUT
from tempfile import TemporaryDirectory
from typing import List

from ..backend import Backend
from ..crypto import DigestAlgorithm, SubjectOptions
from ..errors import CertificateNotFound, CryptoBackendError, SigningError, VerificationFailed


logger = logging.getLogger(__name__)


class OpenSSLBackend(Backend):
    """
    Drives the openssl command line tool. Every call works in a private
    temporary directory, so nothing is left behind on failure.
    """

    name = "openssl"

    def __init__(self, openssl: str = "openssl"):
        self._openssl = openssl

    def gen_key(self, bits: int) -> str:
        with TemporaryDirectory() as tmp:
            key_path = Path(tmp) / "out.key"
            self._call(
                [
                    "genpkey",
                    "-algorithm", "RSA",
                    "-pkeyopt", f"rsa_keygen_bits:{bits}",
                    "-out", str(key_path),
                ],
                CryptoBackendError, f"Failed to generate {bits} bit key",
            )
            return key_path.read_text()

    def gen_csr(self, private_key: str, subject: SubjectOptions) -> str:
        with TemporaryDirectory() as tmp:
            key_path = self._write(tmp, "in.key", private_key)
            csr_path = Path(tmp) / "out.csr"
            self._call(
                [
                    "req", "-new",
                    "-key", str(key_path),
                    "-subj", self._subject_arg(subject),
                    "-sha256",
                    "-out", str(csr_path),
                ],
                CryptoBackendError, "Failed to generate CSR",
            )
            return csr_path.read_text()

    def verify_csr(self, csr_text: str) -> None:
        with TemporaryDirectory() as tmp:
            csr_path = self._write(tmp, "in.csr", csr_text)
            try:
                proc = run(
                    [self._openssl, "req", "-noout", "-verify", "-in", str(csr_path)],
                    stdout=PIPE, stderr=STDOUT,
                )
            except OSError as e:
                raise CryptoBackendError(f"Cannot run {self._openssl}: {e}") from e

        output = proc.stdout.decode("utf-8", "replace")
        # openssl 1.1 prints "verify OK", 3.x "self-signature verify OK"
        if proc.returncode != 0 or "verify OK" not in output:
            raise VerificationFailed(f"Certificate request failed verification: {output.strip()}")

    def gen_self_signed(self, private_key: str, subject: SubjectOptions, validity_days: int) -> str:
        with TemporaryDirectory() as tmp:
            key_path = self._write(tmp, "in.key", private_key)
            cert_path = Path(tmp) / "out.crt"
            self._call(
                [
                    "req", "-new", "-x509",
                    "-key", str(key_path),
                    "-subj", self._subject_arg(subject),
                    "-days", str(validity_days),
                    "-sha256",
                    "-out", str(cert_path),
                ],
                CryptoBackendError, "Failed to generate self-signed certificate",
            )
            return cert_path.read_text()

    def sign_csr(self, csr_text: str, ca_cert: str, ca_key: str, serial: int, validity_days: int) -> str:
        with TemporaryDirectory() as tmp:
            csr_path = self._write(tmp, "in.csr", csr_text)
            ca_cert_path = self._write(tmp, "ca.crt", ca_cert)
            ca_key_path = self._write(tmp, "ca.key", ca_key)
            cert_path = Path(tmp) / "out.crt"
            self._call(
                [
                    "x509", "-req",
                    "-in", str(csr_path),
                    "-CA", str(ca_cert_path),
                    "-CAkey", str(ca_key_path),
                    "-set_serial", str(serial),
                    "-days", str(validity_days),
                    "-sha256",
                    "-out", str(cert_path),
                ],
                SigningError, f"Failed to sign certificate with serial {serial}",
            )
            return cert_path.read_text()

    def fingerprint(self, cert_path: Path, digest: DigestAlgorithm = DigestAlgorithm.SHA1) -> str:
        cert_path = Path(cert_path)
        if not cert_path.is_file():
            raise CertificateNotFound(f"No readable certificate at {cert_path}")

        output = self._call(
            ["x509", "-noout", "-fingerprint", f"-{digest.value}", "-in", str(cert_path)],
            CertificateNotFound, f"{cert_path} does not hold a certificate",
        )

        # "SHA1 Fingerprint=16:CE:..." (lower-case digest name on openssl 3)
        _, _, value = output.strip().partition("=")
        return value.strip().upper()

    def _call(self, args: List[str], error_cls, message: str) -> str:
        cmd = [self._openssl] + args
        logger.debug("Running %s", " ".join(cmd))
        try:
            return check_output(cmd, stderr=PIPE).decode("utf-8", "replace")
        except CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", "replace").strip()
            raise error_cls(f"{message}: {stderr or e}") from e
        except OSError as e:
            raise CryptoBackendError(f"Cannot run {self._openssl}: {e}") from e

    def _write(self, tmp: str, filename: str, text: str) -> Path:
        path = Path(tmp) / filename
        path.write_text(text)
        path.chmod(0o600)
        return path

    def _subject_arg(self, subject: SubjectOptions) -> str:
        parts = [f"/CN={self._escape(subject.hostname)}"]
        if subject.email:
            parts.append(f"/emailAddress={self._escape(subject.email)}")
        return "".join(parts)

    def _escape(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace("/", "\\/")
