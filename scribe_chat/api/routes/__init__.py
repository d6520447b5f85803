"""API route handlers for Scribe Chat."""

from scribe_chat.api.routes import chat as chat
from scribe_chat.api.routes import contacts as contacts
