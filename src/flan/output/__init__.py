# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Output of checked documents."""

from flan.output.writer import WriteInvariantError, write_term, write_terms

__all__ = [
    "WriteInvariantError",
    "write_term",
    "write_terms",
]
