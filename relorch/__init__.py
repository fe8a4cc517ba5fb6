"""relorch: tag-triggered release orchestration (create once, build everywhere, attach)."""

__version__ = "0.3.0"
