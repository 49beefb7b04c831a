import argparse
import logging

from .context import AgentContext
from .jobs import Job, JobState


logger = logging.getLogger(__name__)


class Subcommand:
    def augment_subcommands(self, subparsers: argparse._SubParsersAction):
        pass

    def run(self, ns: argparse.Namespace, ctx: AgentContext) -> int:
        pass

    def wait_for(self, job: Job) -> bool:
        outcome = job.wait()
        if outcome.status is JobState.FAILED:
            logger.error("%s (%s)", outcome.error, outcome.error_type)
            return False
        return True
