import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from config import get_settings
from errors import (
    BatchAbortedError,
    ConfigurationError,
    InputFileNotFound,
    InvalidFileFormat,
    MissingFileArgument,
    RecordParseError,
    TooManyArguments,
    WrongArgument,
)
from logging_config import setup_logging
from payments_engine import PaymentsEngine
from report import write_report

logger = logging.getLogger(__name__)

EXIT_BATCH_ABORTED = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_INPUT_ERROR = 3


def validate_file_path(path: str) -> str:
    if not path.endswith(".csv"):
        raise InvalidFileFormat(path)
    if not os.path.isfile(path):
        raise InputFileNotFound(path)
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-engine",
        description="Apply a CSV stream of transactions and print final client balances.",
    )
    parser.add_argument(
        "file_path",
        nargs="?",
        help="Path to the CSV file containing transactions",
    )
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Halt the entire run on the first transaction error",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse and validate arguments. Raises ConfigurationError on bad input."""
    parser = build_parser()
    args, unknown = parser.parse_known_args(argv)

    for extra in unknown:
        if extra.startswith("-"):
            raise WrongArgument(extra)
    if unknown:
        raise TooManyArguments()
    if args.file_path is None:
        raise MissingFileArgument()

    args.file_path = validate_file_path(args.file_path)
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"error: invalid configuration\n{e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    setup_logging(settings.log_level, settings.log_format)

    try:
        args = parse_args(argv)
    except ConfigurationError as e:
        build_parser().print_usage(sys.stderr)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    if args.batch:
        settings.batch_mode = True

    engine = PaymentsEngine.from_settings(settings)
    try:
        accounts = engine.process_file(args.file_path)
    except BatchAbortedError as e:
        logger.error(str(e))
        return EXIT_BATCH_ABORTED
    except RecordParseError as e:
        logger.error(str(e))
        return EXIT_INPUT_ERROR

    write_report(accounts, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
