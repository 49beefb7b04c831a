from argparse import _SubParsersAction, Namespace

from ..context import AgentContext
from ..control import list_requests
from ..subcommand import Subcommand


class ListSubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("ls", help="List stored signing requests")
        subcmd.set_defaults(func=self.run)

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        print("Currently stored signing requests:")

        summaries = list_requests(ctx)
        if not summaries:
            print("    (none)")

        for summary in summaries:
            if summary.is_signed:
                print(f"    {summary.name}  signed, serial {summary.serial}")
            else:
                print(f"    {summary.name}  pending")

        return 0
