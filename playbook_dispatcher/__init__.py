"""Dispatch playbook runs to connected hosts and Satellite instances."""

__version__ = "0.1.0"