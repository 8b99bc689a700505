# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Sphinx configuration for the flan documentation."""

project = "Flan"
author = "Flan Contributors"
release = "0.1.0"

extensions: list[str] = []

html_theme = "alabaster"
