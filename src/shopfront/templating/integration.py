"""Kida environment setup.

Creates the kida Environment from ``AppConfig`` once at bootstrap. An
optional ``template_dir`` is searched before the bundled views, so a
deployment can override any page or layout by dropping a file with the
same name there.
"""

from collections.abc import Callable, Mapping
from typing import Any

from kida import ChoiceLoader, Environment, FileSystemLoader, PackageLoader

from shopfront.config import AppConfig
from shopfront.templating.filters import BUILTIN_FILTERS

PACKAGE_TEMPLATES = ("shopfront", "templates")


def create_environment(
    config: AppConfig,
    filters: Mapping[str, Callable[..., Any]] | None = None,
    globals_: Mapping[str, Any] | None = None,
) -> Environment:
    """Create the kida Environment for views and layouts.

    Globals available everywhere: ``app_name``, ``base_path``,
    ``href(path)`` (mount-prefixed link) and ``upload_url(filename)``.
    """
    loaders = []
    if config.template_dir is not None:
        loaders.append(FileSystemLoader(str(config.template_dir)))
    loaders.append(PackageLoader(*PACKAGE_TEMPLATES))

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,
        auto_reload=config.debug,
        trim_blocks=True,
        lstrip_blocks=True,
    )

    env.update_filters(BUILTIN_FILTERS)
    if filters:
        env.update_filters(dict(filters))

    base_path = config.base_path.rstrip("/")

    def href(path: str = "/") -> str:
        return f"{base_path}{path}" if path.startswith("/") else path

    def upload_url(filename: str | None) -> str:
        if not filename:
            return href("/static/img/placeholder.png")
        return href(f"/uploads/{filename}")

    env.add_global("app_name", config.app_name)
    env.add_global("base_path", base_path)
    env.add_global("href", href)
    env.add_global("upload_url", upload_url)
    for name, value in (globals_ or {}).items():
        env.add_global(name, value)

    return env


def render_template(env: Environment, name: str, context: Mapping[str, Any]) -> str:
    """Render one template to a string."""
    return env.get_template(name).render(dict(context))
