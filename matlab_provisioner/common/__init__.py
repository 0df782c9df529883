# -*- coding: utf-8 -*-
"""Shared helpers: command execution, logging, files, networking and apt."""
