"""Core domain package for tabquips.

Core contains rule matching, content selection, and delivery orchestration
without any browser or console-specific code, keeping the humor logic
portable.
"""
