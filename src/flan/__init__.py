# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Flan: a variant preprocessor for text files.

Substitutes ``#$variable#`` references and collapses ``#dim{a ## b}#``
dimension blocks to the externally decided branch.
"""

__version__ = "0.1.0"
