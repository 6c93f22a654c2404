# llmbridge/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""
llmbridge: provider-agnostic error normalization and parameter adaptation
for LLM generation clients.

See `llmbridge.llm` for the public API.
"""

__version__ = "0.1.0"
