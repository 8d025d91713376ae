# -*- coding: utf-8 -*-
"""User profiles and weight history."""
