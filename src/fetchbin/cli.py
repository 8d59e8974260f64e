# cli.py
import argparse
import logging
import sys

from . import operations
from .config import Config
from .errors import FetchbinError
from .logger import set_level, setup_logger

_logger = setup_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fetchbin", description="Install prebuilt binaries from a package manifest")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only show warnings and errors")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Every command reads a manifest
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--manifest", "-m", help="Manifest file (default: bundled/configured manifest)")

    placed = argparse.ArgumentParser(add_help=False)
    placed.add_argument("--install-dir", "-d", dest="install_dir", help="Directory holding the installed binary")

    # install / i
    p_install = subparsers.add_parser("install", aliases=["i"], parents=[common, placed], help="Download, verify and install")
    p_install.add_argument("--skip-verify", action="store_true", help="Do not run the post-install smoke test")
    p_install.set_defaults(func=operations.install)

    # uninstall / rm
    p_uninstall = subparsers.add_parser("uninstall", aliases=["rm"], parents=[common, placed], help="Remove the installed binary")
    p_uninstall.set_defaults(func=operations.uninstall)

    # resolve / rv
    p_resolve = subparsers.add_parser("resolve", aliases=["rv"], parents=[common], help="Show the artifact selected for this host")
    p_resolve.set_defaults(func=operations.resolve)

    # info
    p_info = subparsers.add_parser("info", parents=[common], help="Show package details and caveats")
    p_info.set_defaults(func=operations.info)

    # verify
    p_verify = subparsers.add_parser("verify", parents=[common, placed], help="Smoke-test the installed binary")
    p_verify.set_defaults(func=operations.verify)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_level(logging.DEBUG)
    elif args.quiet:
        set_level(logging.WARNING)

    arg_dict = vars(args)
    func = arg_dict.pop("func")
    for key in ("command", "verbose", "quiet"):
        arg_dict.pop(key, None)

    try:
        # ------------------------
        # Initialize config + operations
        # ------------------------
        config = Config()
        operations.init(config)

        func(**arg_dict)
    except FetchbinError as e:
        _logger.error("%s: %s", type(e).__name__, e)
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
