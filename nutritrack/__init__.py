# -*- coding: utf-8 -*-
"""NutriTrack — nutrition and fitness tracking backend."""

__version__ = "1.0.0"
