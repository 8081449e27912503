"""Launch-configuration tuning benchmarks for random number generators.

This package enumerates (threads, blocks) launch configurations, pairs them with
every output type and distribution a generator supports, and registers one
named, lazily executed benchmark per combination. A small harness runs the
registered benchmarks, exports results.json, and renders a Markdown report.
"""

from __future__ import annotations
