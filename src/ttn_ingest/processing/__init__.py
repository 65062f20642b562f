# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Processing layer for TTN Ingest.
Reads uplink messages from a line stream and writes them to SQLite.
"""
