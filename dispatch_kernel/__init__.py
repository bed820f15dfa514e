"""
Dispatch Kernel

Pure domain core of the dispatch confirmation client:
- Packaging slip model with an open status vocabulary
- Per-line dispatch editing over an immutable ordered baseline
- Tagged sales/factory request variants
- Explicit per-stage outcomes for best-effort side effects
"""

__version__ = "0.1.0"
