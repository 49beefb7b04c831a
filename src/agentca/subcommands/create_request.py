from argparse import _SubParsersAction, Namespace
from pathlib import Path

from ..context import AgentContext
from ..control import create_request
from ..subcommand import Subcommand


class CreateRequestSubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("create-request", help="Store a CSR for later signing")
        subcmd.set_defaults(func=self.run)

        subcmd.add_argument("name", type=str, help="Name to store the request under")
        subcmd.add_argument("csr_path", type=Path, help="PEM encoded certificate signing request")

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        if not self.wait_for(create_request(ctx, ns.name, ns.csr_path.read_text())):
            return 1

        print(f"Stored signing request '{ns.name}'.")
        return 0
