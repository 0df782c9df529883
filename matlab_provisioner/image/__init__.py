# -*- coding: utf-8 -*-
"""Dockerfile rendering and container image builds."""
