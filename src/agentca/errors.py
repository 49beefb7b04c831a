class CAError(Exception):
    """
    Base class for everything the CA and the job engine raise.
    """


class InvalidResourceName(CAError):
    pass


class InvalidCSR(CAError):
    pass


class VerificationFailed(CAError):
    pass


class ResourceExists(CAError):
    pass


AlreadyExists = ResourceExists


class NotFound(CAError):
    pass


class ResourceNotFound(NotFound):
    pass


class CertificateNotFound(NotFound):
    pass


class AlreadySigned(CAError):
    pass


class NoPendingRequest(CAError):
    pass


class CryptoBackendError(CAError):
    pass


class SigningError(CAError):
    pass


class SerialAllocationError(CAError):
    pass


class JobDispatchError(CAError):
    pass
