from argparse import _SubParsersAction, Namespace

from ..context import AgentContext
from ..control import delete_request
from ..subcommand import Subcommand


class DeleteRequestSubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("delete-request", help="Discard a stored request and its certificate")
        subcmd.set_defaults(func=self.run)

        subcmd.add_argument("name", type=str, help="Name of the stored request")

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        if not self.wait_for(delete_request(ctx, ns.name)):
            return 1

        print(f"Deleted '{ns.name}'.")
        return 0
