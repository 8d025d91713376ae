# -*- coding: utf-8 -*-
"""Daily food diary and its aggregation."""
