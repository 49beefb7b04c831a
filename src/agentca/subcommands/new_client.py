from argparse import _SubParsersAction, Namespace
from pathlib import Path

from ..context import AgentContext
from ..control import create_request, sign_request
from ..crypto import SubjectOptions
from ..storage import atomic_write_text
from ..subcommand import Subcommand


class NewClientSubcommand(Subcommand):
    def augment_subcommands(self, subparsers: _SubParsersAction):
        subcmd = subparsers.add_parser("new-client", help="Create a new client key and have the CA sign it")
        subcmd.set_defaults(func=self.run)

        subcmd.add_argument("client_name", type=str, help="Name of the client (and of its signing request)")
        subcmd.add_argument("--hostname", type=str, help="Common Name for the client (default: client_name)")
        subcmd.add_argument("--email", type=str, help="Email address for the client")
        subcmd.add_argument("--key-size", dest="key_bits", type=int, choices=[2048, 4096], default=2048,
                            help="Key size in bits (default: 2048)")
        subcmd.add_argument("--out-dir", type=Path, default=Path("."),
                            help="Where to write the client key and certificate (default: .)")

    def run(self, ns: Namespace, ctx: AgentContext) -> int:
        subject = SubjectOptions(hostname=ns.hostname or ns.client_name, email=ns.email)

        key = ctx.backend.gen_key(ctx.config.key_bits)
        csr = ctx.backend.gen_csr(key, subject)

        if not self.wait_for(create_request(ctx, ns.client_name, csr)):
            return 1

        job = sign_request(ctx, ns.client_name)
        if not self.wait_for(job):
            return 1
        issued = job.result()

        ns.out_dir.mkdir(parents=True, exist_ok=True)
        key_path = ns.out_dir / f"{ns.client_name}.key"
        cert_path = ns.out_dir / f"{ns.client_name}.crt"
        atomic_write_text(key_path, key, mode=0o600)
        atomic_write_text(cert_path, issued.certificate)

        print(f"Successfully created new client '{ns.client_name}':")
        print(f"  Key: {key_path}")
        print(f"  Certificate: {cert_path}")
        print(f"  Serial: {issued.serial}")
        if ns.email:
            print(f"  Email: {ns.email}")

        return 0
