from code_packager.errors import (
    FatalConfigError,
    InvalidPatternError,
    MarkerCollisionError,
    MissingExtraFileError,
    PackagerError,
)
from code_packager.packager import PackagerConfig, Packager, PackageSummary, package
from code_packager.rules import merge_rule_config, parse_rule_string
from code_packager.serializer import serialize, serialize_all, split_into_blocks

__all__ = [
    "FatalConfigError",
    "InvalidPatternError",
    "MarkerCollisionError",
    "MissingExtraFileError",
    "PackageSummary",
    "Packager",
    "PackagerConfig",
    "PackagerError",
    "merge_rule_config",
    "package",
    "parse_rule_string",
    "serialize",
    "serialize_all",
    "split_into_blocks",
]
