"""Service helpers backing the Grove CLI, API and language server."""
