"""
User-visible notifications.
"""

from .notifier import Notifier, LogNotifier, CallbackNotifier

__all__ = ["Notifier", "LogNotifier", "CallbackNotifier"]
