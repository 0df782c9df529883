# -*- coding: utf-8 -*-
"""Settings models and the layered configuration loader."""

from .config_loader import load_app_settings
from .config_models import SYMBOLS_DEFAULT, AppSettings

__all__ = ["AppSettings", "SYMBOLS_DEFAULT", "load_app_settings"]
