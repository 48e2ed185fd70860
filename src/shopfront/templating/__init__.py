"""Template environment and filters (kida)."""

from shopfront.templating.integration import create_environment, render_template

__all__ = ["create_environment", "render_template"]
