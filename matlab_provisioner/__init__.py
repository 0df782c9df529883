# -*- coding: utf-8 -*-
"""
Provisioning tool for container images with MATLAB installed through the
MATLAB Package Manager, plus an optional MatConvNet extension.
"""

__version__ = "0.1.0"
