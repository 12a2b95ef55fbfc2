import os

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
DEFAULT_DOMAIN = 'https://your-domain.pages.dev'


def _first(environ, *names, default=None):
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return default


def _number(environ, name, default, cast):
    value = _first(environ, name, default=default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be a number, got {value!r}') from None


def load_config(environ=None):
    """Read service settings from the environment into a Flask config mapping"""
    if environ is None:
        environ = os.environ

    return {
        'API_TOKEN': _first(environ, 'API_TOKEN'),
        'TG_BOT_TOKEN': _first(environ, 'TG_Bot_Token', 'TG_BOT_TOKEN'),
        'TG_CHAT_ID': _first(environ, 'TG_Chat_ID', 'TG_CHAT_ID'),
        'API_DOMAIN': _first(environ, 'API_DOMAIN', default=DEFAULT_DOMAIN).rstrip('/'),
        'METADATA_PATH': _first(environ, 'METADATA_PATH'),
        'TG_MAX_RETRIES': _number(environ, 'TG_MAX_RETRIES', 2, int),
        'TG_TIMEOUT': _number(environ, 'TG_TIMEOUT', 30, float),
        'MAX_CONTENT_LENGTH': MAX_FILE_SIZE,
    }
