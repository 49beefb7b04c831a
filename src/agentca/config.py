from argparse import Namespace
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from .crypto import DigestAlgorithm


class AgentConfig(BaseModel):
    data_dir: Path = Path("./CA")
    backend: Literal["cryptography", "openssl"] = "cryptography"
    key_bits: int = Field(default=2048, ge=1024)
    ca_validity_days: int = Field(default=3650, gt=0)
    cert_validity_days: int = Field(default=365, gt=0)
    digest: DigestAlgorithm = DigestAlgorithm.SHA1
    workers: int = Field(default=4, gt=0)
    debug: bool = False

    @property
    def ca_dir(self) -> Path:
        return self.data_dir / "ca"

    @property
    def requests_dir(self) -> Path:
        return self.data_dir / "requests"

    @classmethod
    def from_namespace(cls, ns: Namespace) -> "AgentConfig":
        fields = {name: getattr(ns, name) for name in cls.model_fields if getattr(ns, name, None) is not None}
        return cls.model_validate(fields)
