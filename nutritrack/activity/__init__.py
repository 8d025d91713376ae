# -*- coding: utf-8 -*-
"""Workout sessions (activity diary)."""
