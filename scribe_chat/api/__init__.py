"""HTTP API for Scribe Chat."""
