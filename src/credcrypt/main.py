import argparse
import sys
import textwrap
from typing import Optional

import importlib_resources

import credcrypt
import credcrypt.edit
import credcrypt.manage
from credcrypt._output import TerminalBackend, output


def main(args: Optional[list] = None):
    version = (
        importlib_resources.files("credcrypt")
        .joinpath("version.txt")
        .read_text()
        .strip()
    )
    parser = argparse.ArgumentParser(
        description=(
            "credcrypt v{}: keep secrets encrypted in your repository"
        ).format(version),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.set_defaults(func=parser.print_usage)

    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug mode."
    )

    subparsers = parser.add_subparsers()

    # Edit
    p = subparsers.add_parser(
        "edit",
        help=textwrap.dedent(
            """
            Encrypted file editor utility. Decrypts the file, invokes the
            editor, and encrypts the file again. If called with a
            non-existent file name, a new encrypted file is created.
        """
        ),
    )
    p.set_defaults(func=p.print_usage)
    p.add_argument(
        "--editor",
        "-e",
        metavar="EDITOR",
        default=credcrypt.edit.resolve_editor_command(),
        help="Invoke EDITOR to edit (default: $VISUAL, $EDITOR or vi)",
    )
    p.add_argument(
        "--key-file",
        "-k",
        default=None,
        help="Read the master key from this file if MASTER_KEY is not set "
        "(default: ./master.key).",
    )
    p.add_argument("path", help="Encrypted file to edit.")
    p.set_defaults(func=credcrypt.edit.main)

    # Show
    p = subparsers.add_parser(
        "show", help="Decrypt a file and write the content to stdout."
    )
    p.set_defaults(func=p.print_usage)
    p.add_argument(
        "--key-file",
        "-k",
        default=None,
        help="Read the master key from this file if MASTER_KEY is not set "
        "(default: ./master.key).",
    )
    p.add_argument("path", help="Encrypted file to decrypt.")
    p.set_defaults(func=credcrypt.manage.show)

    # Init
    p = subparsers.add_parser(
        "init",
        help=textwrap.dedent(
            """
            Generate a new master key and an empty encrypted file. Refuses
            to overwrite existing files.
        """
        ),
    )
    p.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory to create the files in.",
    )
    p.add_argument(
        "--name",
        default=credcrypt.manage.DEFAULT_SECRETS_FILE,
        help="Name of the encrypted file.",
    )
    p.set_defaults(func=credcrypt.manage.init)

    args = parser.parse_args(args)

    # Consume global arguments
    output.enable_debug = args.debug

    # Pass over to function
    if args.func.__name__ == "print_usage":
        args.func()
        sys.exit(1)

    output.backend = TerminalBackend()

    func_args = dict(args._get_kwargs())
    del func_args["func"]
    del func_args["debug"]
    try:
        return args.func(**func_args)
    except credcrypt.ReportingException as e:
        if args.debug:
            output.error(str(e), exc_info=sys.exc_info())
        else:
            e.report()
        sys.exit(1)
