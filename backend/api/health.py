from backend.api.responses import json_response, preflight_response
from backend.config import load_config
from backend.uploader import error_response

METHODS = 'GET, OPTIONS'


def handler(request, context=None):
    """Report whether the upload function has what it needs to run"""
    if request.method == 'OPTIONS':
        return preflight_response(METHODS)

    if request.method != 'GET':
        return json_response(405, error_response('Method not allowed'), METHODS)

    try:
        config = load_config()
    except ValueError as e:
        return json_response(500, error_response(str(e)), METHODS)

    return json_response(200, {
        'status': 'healthy',
        'service': 'telegram-filebed',
        'telegram_configured': bool(config['TG_BOT_TOKEN'] and config['TG_CHAT_ID']),
        'auth_enabled': bool(config['API_TOKEN']),
        'metadata_enabled': bool(config['METADATA_PATH']),
    }, METHODS)
