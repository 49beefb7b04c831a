import logging
import os
import re
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from .authority import CertificateAuthority
from .backend import Backend
from .crypto import IssuedCertificate
from .errors import (
    AlreadySigned, InvalidCSR, InvalidResourceName, NoPendingRequest, ResourceExists,
    ResourceNotFound, VerificationFailed,
)
from .resource import Resource, ResourceManager
from .storage import atomic_write_json, atomic_write_text


logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


class RequestRecord(BaseModel):
    name: str
    created_at: datetime
    signed_at: Optional[datetime] = None
    serial: Optional[int] = None


class SigningRequestSummary(BaseModel):
    name: str
    is_signed: bool
    serial: Optional[int] = None
    created_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SigningRequest(Resource):
    """
    A CSR stored under its name, plus the certificate once it is signed.

    Layout: <requests_dir>/<name>/request.csr, request.crt and meta.json.
    The CSR file is written last on create, so its presence is what marks
    the request as existing.
    """

    CSR_FILE = "request.csr"
    CERT_FILE = "request.crt"
    META_FILE = "meta.json"

    def __init__(self, name: str, path: Path, authority: CertificateAuthority, backend: Backend,
                 validity_days: Optional[int] = None):
        super().__init__(name)
        self._path = Path(path)
        self._authority = authority
        self._backend = backend
        self._validity_days = validity_days

    @property
    def path(self) -> Path:
        return self._path

    @property
    def csr_path(self) -> Path:
        return self._path / self.CSR_FILE

    @property
    def cert_path(self) -> Path:
        return self._path / self.CERT_FILE

    @property
    def meta_path(self) -> Path:
        return self._path / self.META_FILE

    def exists(self) -> bool:
        return self.csr_path.exists()

    def is_signed(self) -> bool:
        return self.cert_path.exists()

    def csr_text(self) -> Optional[str]:
        return self._read(self.csr_path)

    def certificate(self) -> Optional[str]:
        return self._read(self.cert_path)

    def record(self) -> RequestRecord:
        try:
            return RequestRecord.model_validate_json(self.meta_path.read_text())
        except FileNotFoundError:
            return RequestRecord(name=self.name, created_at=_now())

    def summary(self) -> SigningRequestSummary:
        record = self.record() if self.meta_path.exists() else None
        signed = self.is_signed()
        return SigningRequestSummary(
            name=self.name,
            is_signed=signed,
            serial=record.serial if record and signed else None,
            created_at=record.created_at if record else None,
            signed_at=record.signed_at if record and signed else None,
        )

    def create(self, csr_text: str) -> SigningRequestSummary:
        if self.exists():
            raise ResourceExists(f"A CSR named {self.name!r} is already stored")

        try:
            self._backend.verify_csr(csr_text)
        except VerificationFailed as e:
            raise InvalidCSR(f"Rejected CSR {self.name!r}: {e}") from e

        self._path.mkdir(parents=True, exist_ok=True)
        atomic_write_json(self.meta_path, RequestRecord(name=self.name, created_at=_now()).model_dump(mode="json"))
        atomic_write_text(self.csr_path, csr_text)

        logger.info("Stored signing request %r", self.name)
        return self.summary()

    def update(self, overwrite: bool = False) -> IssuedCertificate:
        return self.sign(overwrite)

    def sign(self, overwrite: bool = False) -> IssuedCertificate:
        csr_text = self.csr_text()
        if csr_text is None:
            raise NoPendingRequest(f"No CSR is stored for {self.name!r}")

        if self.is_signed() and not overwrite:
            raise AlreadySigned(f"{self.name!r} is already signed, pass overwrite to re-sign it")

        # the stored file may have been altered since create
        self._backend.verify_csr(csr_text)

        issued = self._authority.sign(csr_text, self._validity_days)

        # record first: a crash before the certificate lands leaves the
        # request unsigned, with its serial burned
        record = self.record()
        record.serial = issued.serial
        record.signed_at = _now()
        atomic_write_json(self.meta_path, record.model_dump(mode="json"))
        atomic_write_text(self.cert_path, issued.certificate)

        logger.info("Signed request %r with serial %d", self.name, issued.serial)
        return issued

    def destroy(self, missing_ok: bool = False):
        """
        Remove the request and its certificate. The issued certificate is
        not revoked.
        """
        if not self._path.exists():
            if missing_ok:
                return None
            raise ResourceNotFound(f"Signing request {self.name!r} disappeared before it could be deleted")

        # rename first so a crash never leaves a half-deleted request visible
        tombstone = self._path.with_name(f".{self.name}.deleted-{uuid.uuid4().hex}")
        try:
            os.replace(self._path, tombstone)
        except FileNotFoundError:
            raise ResourceNotFound(f"Signing request {self.name!r} disappeared before it could be deleted") from None
        shutil.rmtree(tombstone)

        logger.info("Deleted signing request %r", self.name)
        return None

    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text()
        except FileNotFoundError:
            return None


class SigningRequestManager(ResourceManager):
    type_name = "signing-request"

    def __init__(self, requests_dir: Path, authority: CertificateAuthority, backend: Backend,
                 validity_days: Optional[int] = None):
        self._path = Path(requests_dir)
        self._authority = authority
        self._backend = backend
        self._validity_days = validity_days

    @property
    def path(self) -> Path:
        return self._path

    def get(self, name: str) -> SigningRequest:
        request = self._bind(name)
        if not request.path.is_dir():
            raise ResourceNotFound(f"No signing request named {name!r}")
        return request

    def list(self) -> List[SigningRequestSummary]:
        if not self._path.exists():
            return []

        summaries = []
        for entry in sorted(self._path.iterdir()):
            if not entry.is_dir() or not NAME_PATTERN.fullmatch(entry.name):
                continue
            request = self._bind(entry.name)
            if request.exists():
                summaries.append(request.summary())
        return summaries

    def instantiate(self, name: str) -> SigningRequest:
        self._path.mkdir(parents=True, exist_ok=True)
        return self._bind(name)

    def _bind(self, name: str) -> SigningRequest:
        if not NAME_PATTERN.fullmatch(name or ""):
            raise InvalidResourceName(f"{name!r} is not a valid signing request name")
        return SigningRequest(name, self._path / name, self._authority, self._backend, self._validity_days)
