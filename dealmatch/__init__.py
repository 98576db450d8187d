"""Entity resolution engine for legacy CRM deal records."""

__version__ = "1.0.0"
