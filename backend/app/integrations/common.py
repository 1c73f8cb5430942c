from __future__ import annotations


class IntegrationDisabledError(RuntimeError):
    pass


class IntegrationMisconfiguredError(RuntimeError):
    pass


def settings_value(settings, key: str, default=None):
    """Read a setting from a mapping (``app.config``) or an attribute-style object."""
    if settings is None:
        return default
    if hasattr(settings, "get"):
        value = settings.get(key, default)
    else:
        value = getattr(settings, key, default)
    return default if value is None else value


def settings_str(settings, key: str, default: str = "") -> str:
    return str(settings_value(settings, key, default) or default).strip()
