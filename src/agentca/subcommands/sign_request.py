from argparse import _SubParsersAction, Namespace
from pathlib import Path

from ..context import AgentContext
from ..control import sign_request
from ..subcommand import Subcommand


class SignRequestSubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("sign-request", help="Sign a stored CSR with the CA")
        subcmd.set_defaults(func=self.run)

        subcmd.add_argument("name", type=str, help="Name of the stored request")
        subcmd.add_argument("--overwrite", action="store_true", help="Re-sign a request that already has a certificate")
        subcmd.add_argument("--out", type=Path, help="Also write the certificate to this path")

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        job = sign_request(ctx, ns.name, ns.overwrite)
        if not self.wait_for(job):
            return 1

        issued = job.result()
        if ns.out:
            ns.out.write_text(issued.certificate)

        print(f"Signed '{ns.name}' with serial {issued.serial}.")
        return 0
