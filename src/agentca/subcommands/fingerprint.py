from argparse import _SubParsersAction, Namespace
from pathlib import Path

from ..context import AgentContext
from ..crypto import DigestAlgorithm
from ..subcommand import Subcommand


class FingerprintSubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("fingerprint", help="Print a certificate fingerprint (default: the CA's)")
        subcmd.set_defaults(func=self.run)

        subcmd.add_argument("cert_path", type=Path, nargs="?", help="Certificate to fingerprint")
        subcmd.add_argument("--digest", type=str, choices=[d.value for d in DigestAlgorithm],
                            help="Digest algorithm (default: sha1)")

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        cert_path = ns.cert_path or ctx.authority.cert_path
        print(ctx.backend.fingerprint(cert_path, ctx.config.digest))
        return 0
