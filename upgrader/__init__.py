"""Upgrade steps for system packages, shell plugin managers, developer tools, remote hosts and Vagrant boxes."""

__version__ = "0.1.0"