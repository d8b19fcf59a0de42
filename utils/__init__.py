"""
utils/ - Shared helpers
=======================
Cross-cutting helpers (logging) used by every layer.
"""
