from typing import List

from .context import AgentContext
from .jobs import Job, JobOperation
from .signing_request import SigningRequest, SigningRequestManager, SigningRequestSummary


def get_request(ctx: AgentContext, name: str) -> SigningRequest:
    return ctx.signing_requests.get(name)


def list_requests(ctx: AgentContext) -> List[SigningRequestSummary]:
    return ctx.signing_requests.list()


def create_request(ctx: AgentContext, name: str, csr_text: str) -> Job:
    return ctx.submit(SigningRequestManager.type_name, name, JobOperation.CREATE, [csr_text])


def sign_request(ctx: AgentContext, name: str, overwrite: bool = False) -> Job:
    return ctx.submit(SigningRequestManager.type_name, name, JobOperation.UPDATE, [overwrite])


def delete_request(ctx: AgentContext, name: str) -> Job:
    return ctx.submit(SigningRequestManager.type_name, name, JobOperation.DELETE)
