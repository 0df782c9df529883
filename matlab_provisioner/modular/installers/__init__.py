"""Provisioning steps, one module per step."""
