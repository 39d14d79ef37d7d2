"""Pocketbook — real-time backend for the expense tracker.

Pushes expense and category change notifications to every browser tab
or device a user has open, so dashboards refresh without polling.
"""

__version__ = "0.1.0"
