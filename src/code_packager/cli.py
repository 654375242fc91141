#!/usr/bin/env python3
"""
code-packager: Package a source tree into one annotated text file

Common usage:
  code-packager
  code-packager -i src -o src_code.txt
  code-packager -i src -a Cargo.toml -a 'docs/*.md' --ignore 'target/'
  code-packager --rule 'Cargo.toml + src + !target'
  code-packager --list-files -i src

Settings can also come from `.code-packager.toml`, `code-packager.toml`, or a
`[tool.code-packager]` table in `pyproject.toml`.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from code_packager.config import find_config_file, load_config, merge_cli_with_config
from code_packager.errors import FatalConfigError
from code_packager.logging_utils import configure_logging
from code_packager.packager import (
    DEFAULT_INPUT_DIR,
    DEFAULT_OUTPUT_FILE,
    PackagerConfig,
    Packager,
    PackageSummary,
)
from code_packager.rules import DEFAULT_RULE_SEPARATOR, merge_rule_config, parse_rule_string


@dataclass
class Options:
    """Command-line options for the code-packager tool."""

    input: str | None
    output: str | None
    add: list[str]
    ignore: list[str]
    rule: str | None
    rule_separator: str | None
    list_files: bool
    no_config: bool
    verbose: bool
    quiet: bool
    version: bool


# argparse dest name -> Options field name, for flags a config file may override
_TRACKED_FLAGS = ("input", "output", "rule", "rule_separator")


def _parse_args(args: list[str] | None = None) -> tuple[Options, set[str]]:
    """
    Parse command-line arguments.

    Returns `(options, explicit_flags)`. Tracked flags default to `None` so
    that a flag the user passed (even with the default value) is told apart
    from one left unset.
    """
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-i",
        "--input",
        type=str,
        default=None,
        metavar="DIR",
        help=f"Input directory to walk (default: {DEFAULT_INPUT_DIR})",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        metavar="FILE",
        help=f"Output file path (default: {DEFAULT_OUTPUT_FILE})",
    )
    parser.add_argument(
        "-a",
        "--add",
        action="append",
        default=[],
        metavar="SPEC",
        help="Extra file, directory or glob to include, relative to the current directory. "
        "Can be repeated",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Ignore files and directories matching this glob pattern. Can be repeated",
    )
    parser.add_argument(
        "--rule",
        type=str,
        default=None,
        metavar="RULE_STRING",
        help="Rule string for including/excluding files (e.g., 'Cargo.toml + src + !target')",
    )
    parser.add_argument(
        "--rule-separator",
        type=str,
        default=None,
        dest="rule_separator",
        metavar="SEPARATOR",
        help=f"Separator used in the rule string (default: {DEFAULT_RULE_SEPARATOR})",
    )
    parser.add_argument(
        "--list-files",
        action="store_true",
        dest="list_files",
        help="Print the selected relative paths without writing the output file",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        dest="no_config",
        help="Do not read settings from a config file",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log traversal details to stderr"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only report errors"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    explicit_flags = {name for name in _TRACKED_FLAGS if getattr(opts, name) is not None}

    return (
        Options(
            input=opts.input,
            output=opts.output,
            add=opts.add,
            ignore=opts.ignore,
            rule=opts.rule,
            rule_separator=opts.rule_separator,
            list_files=opts.list_files,
            no_config=opts.no_config,
            verbose=opts.verbose,
            quiet=opts.quiet,
            version=opts.version,
        ),
        explicit_flags,
    )


def _build_config(options: Options) -> PackagerConfig:
    """Turn merged options into a `PackagerConfig`, expanding the rule string."""
    rule_extra: list[str] = []
    rule_ignore: list[str] = []
    if options.rule:
        rule_extra, rule_ignore = parse_rule_string(
            options.rule, options.rule_separator or DEFAULT_RULE_SEPARATOR
        )
    extra_files, ignore_patterns = merge_rule_config(
        rule_extra, rule_ignore, options.add, options.ignore
    )
    return PackagerConfig(
        input_dir=options.input or DEFAULT_INPUT_DIR,
        output_file=options.output or DEFAULT_OUTPUT_FILE,
        extra_files=extra_files,
        ignore_patterns=ignore_patterns,
    )


def _report(summary: PackageSummary, quiet: bool) -> None:
    """Print skipped files and warnings from a run to stderr."""
    if not quiet:
        for skipped in summary.skipped:
            detail = f": {skipped.detail}" if skipped.detail else ""
            print(
                f"Skipped {skipped.relative_path} ({skipped.reason.value}{detail})",
                file=sys.stderr,
            )
    for warning in summary.warnings:
        print(f"Warning: {warning}", file=sys.stderr)


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the code-packager CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for configuration errors, 2 for other errors)
    """
    options, explicit_flags = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("code-packager")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    if options.verbose:
        level = logging.DEBUG
    elif options.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    configure_logging(level)

    try:
        if not options.no_config:
            config_path = find_config_file(Path.cwd())
            if config_path:
                merge_cli_with_config(options, load_config(config_path), explicit_flags)

        packager = Packager(_build_config(options))

        if options.list_files:
            selection, summary = packager.select()
            for candidate in selection:
                print(candidate.relative_path)
            _report(summary, options.quiet)
            return 0

        summary = packager.run()
    except (FatalConfigError, ValueError) as e:
        # Bad paths, bad patterns, or an empty rule separator.
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    _report(summary, options.quiet)
    if not options.quiet:
        print(f"Source code successfully packaged to {summary.output_file}")
        print(
            f"{summary.packaged_count} files packaged, {summary.skipped_count} skipped, "
            f"{summary.warning_count} warnings"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
