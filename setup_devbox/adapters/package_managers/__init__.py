"""Installers that delegate to a package manager (brew, cargo, go, pip, uv, rustup)."""
