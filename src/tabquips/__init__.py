"""tabquips: contextual humor delivery for a tab-management tool.

The ``core`` package holds the matching, selection, and delivery logic. The
``adapters`` package connects it to catalogs, context sources, and consoles.
"""

__version__ = "0.3.0"
