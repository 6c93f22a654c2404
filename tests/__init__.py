# SPDX-License-Identifier: Apache-2.0
"""
llmbridge test suite.
"""
