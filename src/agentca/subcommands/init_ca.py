from argparse import _SubParsersAction, Namespace

from ..context import AgentContext
from ..crypto import SubjectOptions
from ..subcommand import Subcommand


class InitCASubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("init-ca", help="Create the CA key, self-signed root and serial file")
        subcmd.set_defaults(func=self.run)

        subcmd.add_argument("hostname", type=str, help="Common Name of the CA, e.g. ca.example.com")
        subcmd.add_argument("--email", type=str, help="Optional emailAddress for the CA subject")
        subcmd.add_argument("--key-size", dest="key_bits", type=int, choices=[2048, 4096], default=4096,
                            help="Key size in bits (default: 4096)")
        subcmd.add_argument("--validity", dest="ca_validity_days", type=int, default=3650,
                            help="Validity period in days (default: 3650)")

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        subject = SubjectOptions(hostname=ns.hostname, email=ns.email)
        ctx.authority.initialize(subject, ctx.config.key_bits, ctx.config.ca_validity_days)

        print(f"CA '{subject.hostname}' created successfully.")
        print(f"  Key: {ctx.authority.key_path}")
        print(f"  Certificate: {ctx.authority.cert_path}")
        print(f"  Fingerprint ({ctx.config.digest.value}): {ctx.authority.fingerprint(ctx.config.digest)}")

        return 0
