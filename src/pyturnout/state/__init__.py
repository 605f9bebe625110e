"""State layer.

This package is the single source of truth for what the rendering layer
sees: merged estimate records, the transient highlight set and the
classified signal log.
"""
