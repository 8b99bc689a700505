# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Configuration file, decisions and process flags for flan."""

from flan.config.decisions import (
    Decision,
    Decisions,
    DimDecision,
    Index,
    NameDecision,
    NameIndex,
    NumIndex,
    parse_decision,
    parse_decisions,
    parse_index,
)
from flan.config.file import (
    DEFAULT_CONFIG_NAME,
    Choices,
    ConfigError,
    ConfigErrorKind,
    ConfigFile,
    NamedChoices,
    Options,
    SizeChoices,
    is_identifier,
    load_config_file,
    parse_config_text,
)
from flan.config.settings import Command, Config, Flags, load_config, make_flags

__all__ = [
    "Choices",
    "Command",
    "Config",
    "ConfigError",
    "ConfigErrorKind",
    "ConfigFile",
    "DEFAULT_CONFIG_NAME",
    "Decision",
    "Decisions",
    "DimDecision",
    "Flags",
    "Index",
    "NameDecision",
    "NameIndex",
    "NamedChoices",
    "NumIndex",
    "Options",
    "SizeChoices",
    "is_identifier",
    "load_config",
    "load_config_file",
    "make_flags",
    "parse_config_text",
    "parse_decision",
    "parse_decisions",
    "parse_index",
]
