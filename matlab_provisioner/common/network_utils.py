# matlab_provisioner/common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions.
"""
import logging
import re
from typing import Optional

from matlab_provisioner.config.config_models import AppSettings

from .command_utils import get_symbols, log_provision

module_logger = logging.getLogger(__name__)

# port@host, port optional; several servers are joined with ':' or ','
_LICENSE_ENTRY_RE = re.compile(r"^(\d{1,5})?@([A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)*)$")


def validate_license_server(
    license_server: Optional[str],
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Check that a license server string looks like `port@host`.

    Redundant or fallback servers may be listed, separated by ':' or ','.
    The value is only checked, never altered; callers keep passing it on
    verbatim.

    Returns:
        True if every entry is well formed, False otherwise (including an
        empty or missing value).
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if not isinstance(license_server, str) or not license_server.strip():
        log_provision(
            f"{symbols.get('info', 'ℹ️')} No license server given. MATLAB will use its own license resolution.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    entries = re.split(r"[:,]", license_server)
    for entry in entries:
        match = _LICENSE_ENTRY_RE.fullmatch(entry)
        if not match:
            log_provision(
                f"{symbols.get('warning', '!')} License server entry '{entry}' is not in port@host form.",
                "warning",
                logger_to_use,
                app_settings,
            )
            return False
        port = match.group(1)
        if port is not None and not (1 <= int(port) <= 65535):
            log_provision(
                f"{symbols.get('warning', '!')} License server port '{port}' is out of range (1-65535).",
                "warning",
                logger_to_use,
                app_settings,
            )
            return False
    return True
