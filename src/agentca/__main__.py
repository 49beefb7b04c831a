import argparse
import logging
from pathlib import Path
from typing import List

from .config import AgentConfig
from .context import AgentContext
from .errors import CAError
from .subcommand import Subcommand
from .subcommands import build_subcommands


logger = logging.getLogger(__name__)


def get_config(subcommands: List[Subcommand], parser: argparse.ArgumentParser) -> argparse.Namespace:
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--data-dir", "-D", type=Path, help="Directory holding the CA and requests. Default: './CA'", default=Path("./CA"))
    parser.add_argument("--backend", "-b", type=str, choices=["cryptography", "openssl"], default="cryptography",
                        help="Crypto backend (default: cryptography)")
    parser.add_argument("--workers", "-w", type=int, default=4, help="Number of job worker threads (default: 4)")

    subcommand_subparsers = parser.add_subparsers(title="subcommands", dest="subcommand", required=True)

    for subcommand in subcommands:
        subcommand.augment_subcommands(subcommand_subparsers)

    conf = parser.parse_args()

    return conf


def init_logging(conf: argparse.Namespace):
    if conf.debug:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


def main():
    parser = argparse.ArgumentParser(description="Certificate authority for managed nodes: signing requests run as serialized jobs.")

    subcommands = build_subcommands(parser)

    ns = get_config(subcommands, parser)

    init_logging(ns)

    ctx = AgentContext(AgentConfig.from_namespace(ns))

    subcmd_func = ns.func
    try:
        return subcmd_func(ns, ctx)
    except CAError as e:
        logger.error("%s failed: %s", ns.subcommand, e)
        return 1
    finally:
        ctx.close()


# NOTE: no if __name__ == "__main__" nonsense needed here since poetry generates our wrapper script that calls main() for us
