# -*- coding: utf-8 -*-
"""Bearer token authentication."""
