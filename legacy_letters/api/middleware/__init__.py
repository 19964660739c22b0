"""API middleware: error envelope and admin authentication."""
