"""Scribe Chat: ask questions about a contact, grounded in CRM data and meetings."""

__version__ = "0.1.0"
