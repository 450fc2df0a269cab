"""Installers that download release artifacts (GitHub releases, URLs, fonts)."""
