"""Bundled SQL migrations, applied in filename order."""
