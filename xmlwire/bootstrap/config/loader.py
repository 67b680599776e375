import argparse
import os
from functools import lru_cache
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xmlwire",
        description=(
            "Serve or call XML-RPC methods over HTTP.\n\n"
            "Settings are read from a YAML file, then overridden by\n"
            "XMLWIRE_* environment variables."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to an xmlwire configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity (default INFO).\n"
            "DEBUG also reports ignored tags and skipped values."
        ),
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("serve", help="Run the XML-RPC server with the built-in handlers")

    call = commands.add_parser("call", help="Call one method on the configured server")
    call.add_argument("method", help="Method name, e.g. system.listMethods")
    call.add_argument(
        "params",
        nargs="*",
        help=(
            "Parameters as JSON literals, e.g. 1 2.5 '\"text\"' '[1, 2]'.\n"
            "Anything that is not valid JSON is sent as a string."
        ),
    )

    return parser


@lru_cache
def get_cli_args() -> argparse.Namespace:
    return build_parser().parse_args()


def resolve_configfile(cli_path: str | None) -> Path | None:
    """
    Priority: CLI > ENV > default file in current working directory.

    The default file is optional; an explicitly named file must exist.
    """
    raw = cli_path or os.getenv("XMLWIRECONFIG")

    if raw is None:
        file = Path.cwd() / "xmlwire.yaml"
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the XMLWIRECONFIG environment variable\n"
            "  - Or place an 'xmlwire.yaml' file in the current working directory."
        )

    return file


@lru_cache
def get_configfile() -> Path | None:
    return resolve_configfile(get_cli_args().config)
