"""
Rule strings: a compact way to give extra files and ignore patterns together.

A rule string such as `"Cargo.toml + src + !target"` lists items separated by
a separator. Items prefixed with `!` are ignore patterns; all others are extra
files.
"""

from __future__ import annotations

DEFAULT_RULE_SEPARATOR = "+"


def parse_rule_string(
    rule_string: str, separator: str = DEFAULT_RULE_SEPARATOR
) -> tuple[list[str], list[str]]:
    """
    Split a rule string into `(extra_files, ignore_patterns)`.

    Items are trimmed and empty items dropped. An item that is only `!` is
    dropped too.
    """
    if not separator:
        raise ValueError("Rule separator must not be empty")

    extra_files: list[str] = []
    ignore_patterns: list[str] = []

    for item in rule_string.split(separator):
        trimmed = item.strip()
        if not trimmed:
            continue
        if trimmed.startswith("!"):
            pattern = trimmed[1:].strip()
            if pattern:
                ignore_patterns.append(pattern)
        else:
            extra_files.append(trimmed)

    return extra_files, ignore_patterns


def merge_rule_config(
    rule_extra: list[str],
    rule_ignore: list[str],
    cli_extra: list[str],
    cli_ignore: list[str],
) -> tuple[list[str], list[str]]:
    """Combine rule-derived and individually given lists, rule entries first."""
    return rule_extra + cli_extra, rule_ignore + cli_ignore
