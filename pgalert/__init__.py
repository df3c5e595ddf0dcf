"""pgalert — alert suppression, lifecycle and escalation for PostgreSQL monitoring."""

__version__ = "0.1.0"
