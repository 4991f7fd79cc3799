"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Framework integrations. Each submodule imports its framework on demand.
"""
