from __future__ import annotations

import argparse
import os
import sys
from typing import Sequence

import structlog

from secretenv import __version__
from secretenv.backends import BackendConfig, create_backends
from secretenv.cli import ux
from secretenv.config import SemConfig, get_settings, load_config
from secretenv.core.errors import (
    OutputNotIgnoredError,
    SecretEnvError,
    format_error_message,
    main_with_error_handling,
)
from secretenv.envfile.cache import (
    cache_file_name,
    ensure_git_ignored,
    read_cache_file,
    security_warning,
    write_cache_file,
)
from secretenv.envfile.formatter import FormatOptions, format_content, format_lines
from secretenv.envfile.parser import parse_file
from secretenv.logging import bind_context, configure_logging
from secretenv.resolver import ResolveOptions, SecretResolver

logger = structlog.get_logger()

DEFAULT_INPUT = ".env"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sem", description="Resolve sem:// secret references into environment variables"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    def add_resolve_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("-i", "--input", default=DEFAULT_INPUT, help="Input env file")
        sub.add_argument("--endpoint-url", help="Custom AWS endpoint URL (e.g. LocalStack)")
        sub.add_argument(
            "-q", "--no-quotes", action="store_true", help="Do not wrap values in single quotes"
        )
        sub.add_argument(
            "--no-expand-json",
            action="store_true",
            help="Keep JSON secrets as a single value instead of one variable per field",
        )
        sub.add_argument("--config", help="Path to config file")

    update_parser = subparsers.add_parser(
        "update", help="Fetch secrets and write them to the cache file"
    )
    add_resolve_arguments(update_parser)
    update_parser.add_argument(
        "--skip-git-check",
        action="store_true",
        help="Write the cache file even if git does not ignore it",
    )

    load_parser = subparsers.add_parser("load", help="Print variables from the cache file")
    load_parser.add_argument("-i", "--input", default=DEFAULT_INPUT, help="Input env file")
    load_parser.add_argument(
        "-e", "--with-export", action="store_true", help="Print 'export KEY=value' lines"
    )
    load_parser.add_argument(
        "--only-unset",
        action="store_true",
        help="Skip variables already set in the current environment",
    )

    resolve_parser = subparsers.add_parser(
        "resolve", help="Fetch secrets and print them without writing a cache file"
    )
    add_resolve_arguments(resolve_parser)
    resolve_parser.add_argument(
        "-e", "--with-export", action="store_true", help="Print 'export KEY=value' lines"
    )

    subparsers.add_parser("version", help="Show version")

    return parser


def _load_config(config_path: str | None) -> SemConfig:
    return load_config(config_path or get_settings().config_path)


def _resolve_values(
    input_file: str,
    config: SemConfig,
    endpoint_url: str | None,
    expand_json: bool,
) -> dict[str, str]:
    """Parse ``input_file`` and resolve every entry."""
    settings = get_settings()
    backend_config = BackendConfig(
        platforms=config.backends.platforms,
        aws_endpoint_url=(
            endpoint_url or settings.aws_endpoint_url or config.backends.aws_endpoint_url
        ),
    )

    entries = parse_file(input_file)
    logger.debug("input_parsed", entries=len(entries))

    resolver = SecretResolver(
        create_backends(backend_config), ResolveOptions(no_expand_json=not expand_json)
    )
    return resolver.resolve(entries)


def _report(error: SecretEnvError) -> None:
    ux.error(format_error_message(error))


@main_with_error_handling(report=_report)
def update_command(
    input_file: str = DEFAULT_INPUT,
    endpoint_url: str | None = None,
    no_quotes: bool = False,
    no_expand_json: bool = False,
    config_path: str | None = None,
    skip_git_check: bool = False,
) -> int:
    """Resolve ``input_file`` and write the result to its cache file."""
    output_file = cache_file_name(input_file)
    bind_context(input=input_file)

    if skip_git_check:
        ux.warning(f"Skipping git ignore check for {output_file}")
    else:
        try:
            ensure_git_ignored(output_file)
        except OutputNotIgnoredError:
            ux.security_panel("Security Warning", security_warning(output_file))
            raise

    config = _load_config(config_path)
    expand_json = config.output.expand_json and not no_expand_json
    values = _resolve_values(input_file, config, endpoint_url, expand_json)
    use_quotes = config.output.quotes and not no_quotes
    content = format_content(
        values,
        FormatOptions(
            use_quotes=use_quotes,
            preferred_order=list(values),
            compact_json=not expand_json,
        ),
    )
    write_cache_file(output_file, content)

    ux.success(f"Successfully updated {len(values)} environment variables in {output_file}")
    return 0


@main_with_error_handling(report=_report)
def load_command(
    input_file: str = DEFAULT_INPUT,
    with_export: bool = False,
    only_unset: bool = False,
) -> int:
    """Print the cached variables for ``input_file``."""
    output_file = cache_file_name(input_file)
    values = read_cache_file(output_file)

    if only_unset:
        values = {key: value for key, value in values.items() if key not in os.environ}

    for line in format_lines(values, FormatOptions(export=with_export)):
        print(line)
    logger.debug("cache_loaded", path=output_file, variables=len(values))
    return 0


@main_with_error_handling(report=_report)
def resolve_command(
    input_file: str = DEFAULT_INPUT,
    endpoint_url: str | None = None,
    no_quotes: bool = False,
    no_expand_json: bool = False,
    config_path: str | None = None,
    with_export: bool = False,
) -> int:
    """Resolve ``input_file`` and print the variables to stdout."""
    bind_context(input=input_file)
    config = _load_config(config_path)
    expand_json = config.output.expand_json and not no_expand_json
    values = _resolve_values(input_file, config, endpoint_url, expand_json)

    options = FormatOptions(
        use_quotes=config.output.quotes and not no_quotes,
        export=with_export,
        compact_json=not expand_json,
    )
    for line in format_lines(values, options):
        print(line)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_format)

    if args.command == "update":
        return update_command(
            input_file=args.input,
            endpoint_url=args.endpoint_url,
            no_quotes=args.no_quotes,
            no_expand_json=args.no_expand_json,
            config_path=args.config,
            skip_git_check=args.skip_git_check,
        )

    if args.command == "load":
        return load_command(
            input_file=args.input,
            with_export=args.with_export,
            only_unset=args.only_unset,
        )

    if args.command == "resolve":
        return resolve_command(
            input_file=args.input,
            endpoint_url=args.endpoint_url,
            no_quotes=args.no_quotes,
            no_expand_json=args.no_expand_json,
            config_path=args.config,
            with_export=args.with_export,
        )

    if args.command == "version":
        print(f"sem {__version__}")
        return 0

    parser.print_help()
    return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    run()
