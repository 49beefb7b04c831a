from enum import Enum, unique
from typing import Optional

from pydantic import BaseModel, Field


@unique
class DigestAlgorithm(Enum):
    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"


class SubjectOptions(BaseModel):
    """
    Recognised subject fields. Optional fields left as None are omitted from
    the generated subject.
    """
    hostname: str = Field(min_length=1)
    email: Optional[str] = None


class IssuedCertificate(BaseModel):
    serial: int
    certificate: str


class IssuedIdentity(BaseModel):
    private_key: str
    csr: str
    certificate: str
    serial: int


def format_fingerprint(digest: bytes) -> str:
    return ":".join(f"{b:02X}" for b in digest)
