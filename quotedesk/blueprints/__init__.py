"""Blueprint packages. Each exposes its Blueprint object for create_app()."""
