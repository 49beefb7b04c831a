import logging
import threading
from pathlib import Path
from typing import Optional

from .backend import Backend
from .crypto import DigestAlgorithm, IssuedCertificate, IssuedIdentity, SubjectOptions
from .errors import ResourceExists, ResourceNotFound
from .serial import SerialAllocator
from .storage import atomic_write_text


logger = logging.getLogger(__name__)


class CertificateAuthority:
    KEY_FILE = "ca.key"
    CERT_FILE = "ca.crt"
    SERIAL_FILE = "ca.srl"

    def __init__(self, ca_dir: Path, backend: Backend, validity_days: int = 365):
        self._path = Path(ca_dir)
        self._backend = backend
        self._validity_days = validity_days
        self._serials = SerialAllocator(self._path / self.SERIAL_FILE)
        self._load_lock = threading.Lock()
        self._key: Optional[str] = None
        self._cert: Optional[str] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def key_path(self) -> Path:
        return self._path / self.KEY_FILE

    @property
    def cert_path(self) -> Path:
        return self._path / self.CERT_FILE

    @property
    def serials(self) -> SerialAllocator:
        return self._serials

    def is_initialized(self) -> bool:
        return self.key_path.exists() and self.cert_path.exists() and self._serials.exists()

    def initialize(self, subject: SubjectOptions, key_bits: int = 2048, validity_days: int = 3650):
        if self.key_path.exists() or self.cert_path.exists():
            raise ResourceExists(f"A CA already exists in {self._path}")

        self._path.mkdir(parents=True, exist_ok=True)

        key = self._backend.gen_key(key_bits)
        cert = self._backend.gen_self_signed(key, subject, validity_days)

        atomic_write_text(self.key_path, key, mode=0o600)
        atomic_write_text(self.cert_path, cert)
        if not self._serials.exists():
            self._serials.initialize()

        logger.info("Initialized CA %r in %s", subject.hostname, self._path)

    def certificate(self) -> str:
        self._load()
        return self._cert

    def sign(self, csr_text: str, validity_days: Optional[int] = None) -> IssuedCertificate:
        """
        Issue a certificate for an already verified request. A serial is
        consumed even if the backend then fails to sign.
        """
        self._load()
        serial = self._serials.next_serial()
        cert = self._backend.sign_csr(
            csr_text, self._cert, self._key, serial, validity_days or self._validity_days
        )
        logger.info("Issued certificate with serial %d", serial)
        return IssuedCertificate(serial=serial, certificate=cert)

    def issue_identity(self, subject: SubjectOptions, key_bits: int = 2048) -> IssuedIdentity:
        key = self._backend.gen_key(key_bits)
        csr = self._backend.gen_csr(key, subject)
        self._backend.verify_csr(csr)
        issued = self.sign(csr)
        return IssuedIdentity(private_key=key, csr=csr, certificate=issued.certificate, serial=issued.serial)

    def fingerprint(self, digest: DigestAlgorithm = DigestAlgorithm.SHA1) -> str:
        return self._backend.fingerprint(self.cert_path, digest)

    def _load(self):
        with self._load_lock:
            if self._key is not None:
                return

            if not self.is_initialized():
                raise ResourceNotFound(f"No CA has been initialized in {self._path}")

            self._cert = self.cert_path.read_text()
            self._key = self.key_path.read_text()
