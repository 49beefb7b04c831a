from ..backend import Backend
from ..config import AgentConfig

from .openssl import OpenSSLBackend
from .pyca import CryptographyBackend


BACKENDS = {
    CryptographyBackend.name: CryptographyBackend,
    OpenSSLBackend.name: OpenSSLBackend,
}


def get_backend(conf: AgentConfig) -> Backend:
    return BACKENDS[conf.backend]()
