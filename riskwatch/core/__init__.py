# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core domain logic for RiskWatch.

- config: Settings loaded from the environment
- risk: Signal collection, classification, throttling and notification
"""
