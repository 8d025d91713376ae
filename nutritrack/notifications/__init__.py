# -*- coding: utf-8 -*-
"""Push notifications (Expo) and device token registry."""

from .dispatcher import NotificationDispatcher, get_dispatcher, set_dispatcher

__all__ = ["NotificationDispatcher", "get_dispatcher", "set_dispatcher"]
