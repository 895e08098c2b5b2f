"""naswatch - boot verification and configuration drift auditing for an unattended NAS."""

__version__ = "0.3.0"
