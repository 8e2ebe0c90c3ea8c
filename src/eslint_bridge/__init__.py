"""eslint-bridge - ESLint diagnostics and fixes over the Language Server Protocol."""

__version__ = "0.3.0"
