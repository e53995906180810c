"""Adapters connecting the core to catalogs, context sources, and consoles."""
