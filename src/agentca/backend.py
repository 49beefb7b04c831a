from pathlib import Path

from .crypto import DigestAlgorithm, SubjectOptions


class Backend:
    """
    Crypto primitives. Keys, requests and certificates travel as PEM text.
    """

    name = "abstract"

    def gen_key(self, bits: int) -> str:
        raise NotImplementedError()

    def gen_csr(self, private_key: str, subject: SubjectOptions) -> str:
        raise NotImplementedError()

    def verify_csr(self, csr_text: str) -> None:
        """
        Check the request's self-signature against its own public key.
        Raises VerificationFailed on any mismatch or parse failure.
        """
        raise NotImplementedError()

    def gen_self_signed(self, private_key: str, subject: SubjectOptions, validity_days: int) -> str:
        raise NotImplementedError()

    def sign_csr(self, csr_text: str, ca_cert: str, ca_key: str, serial: int, validity_days: int) -> str:
        raise NotImplementedError()

    def fingerprint(self, cert_path: Path, digest: DigestAlgorithm = DigestAlgorithm.SHA1) -> str:
        raise NotImplementedError()
