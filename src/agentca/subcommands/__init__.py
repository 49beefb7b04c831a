from argparse import ArgumentParser
from typing import List

from ..subcommand import Subcommand

from .help import HelpSubcommand
from .init_ca import InitCASubcommand
from .new_client import NewClientSubcommand
from .create_request import CreateRequestSubcommand
from .sign_request import SignRequestSubcommand
from .delete_request import DeleteRequestSubcommand
from .list import ListSubcommand
from .fingerprint import FingerprintSubcommand


def build_subcommands(parser: ArgumentParser) -> List[Subcommand]:
    subcommands = [
        HelpSubcommand(parser),

        InitCASubcommand(),
        NewClientSubcommand(),

        CreateRequestSubcommand(),
        SignRequestSubcommand(),
        DeleteRequestSubcommand(),

        ListSubcommand(),
        FingerprintSubcommand(),
    ]
    return subcommands
