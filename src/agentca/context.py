import logging
from typing import Any, Dict, Sequence

from .authority import CertificateAuthority
from .backends import get_backend
from .config import AgentConfig
from .errors import JobDispatchError
from .jobs import Job, JobManager, JobOperation
from .resource import ResourceManager
from .signing_request import SigningRequestManager


logger = logging.getLogger(__name__)


class AgentContext:
    """
    Everything a running agent shares: the crypto backend, the CA, the
    resource managers and the job manager. Built once at startup and passed
    around explicitly; `close()` stops intake and drains in-flight jobs.
    """

    def __init__(self, config: AgentConfig):
        self.config = config
        self.backend = get_backend(config)
        self.authority = CertificateAuthority(config.ca_dir, self.backend, config.cert_validity_days)
        self.job_manager = JobManager(max_workers=config.workers)
        self._managers: Dict[str, ResourceManager] = {}

        self.register_manager(
            SigningRequestManager(config.requests_dir, self.authority, self.backend, config.cert_validity_days)
        )

    @property
    def signing_requests(self) -> SigningRequestManager:
        return self.get_manager(SigningRequestManager.type_name)

    def register_manager(self, manager: ResourceManager):
        if manager.type_name in self._managers:
            raise JobDispatchError(f"A manager for {manager.type_name!r} is already registered")
        self._managers[manager.type_name] = manager

    def get_manager(self, type_name: str) -> ResourceManager:
        try:
            return self._managers[type_name]
        except KeyError:
            raise JobDispatchError(f"Unknown resource type {type_name!r}") from None

    def submit(self, type_name: str, resource_name: str, operation: JobOperation,
               args: Sequence[Any] = ()) -> Job:
        try:
            operation = JobOperation(operation)
        except ValueError:
            raise JobDispatchError(f"Unknown operation {operation!r}") from None

        job = Job(self.get_manager(type_name), resource_name, operation, args)
        return self.job_manager.run(job)

    def close(self, wait: bool = True):
        logger.debug("Shutting down agent context")
        self.job_manager.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
