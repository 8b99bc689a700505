# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Decision resolution and checking of parsed documents."""

from flan.infer.check import InferErrorKind, check, collect, collect_dims
from flan.infer.env import Dim, Environment
from flan.infer.resolve import ResolveError, fill_env, make_env, resolve

__all__ = [
    "Dim",
    "Environment",
    "InferErrorKind",
    "ResolveError",
    "check",
    "collect",
    "collect_dims",
    "fill_env",
    "make_env",
    "resolve",
]
