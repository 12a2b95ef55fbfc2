import logging

from backend.api.responses import json_response as _json_response, preflight_response
from backend.config import load_config
from backend.multipart_parser import FormatError, parse_multipart_form, to_multidict
from backend.storage import JsonMetadataStore
from backend.telegram import RetryPolicy, TelegramClient, UploadError
from backend.uploader import check_token, error_response, upload_file

logger = logging.getLogger(__name__)

METHODS = 'POST, OPTIONS'


def json_response(status_code, payload):
    return _json_response(status_code, payload, METHODS)


def handler(request, context=None):
    """Serverless handler storing an uploaded file in Telegram"""
    # Handle CORS preflight requests
    if request.method == 'OPTIONS':
        return preflight_response(METHODS)

    # Only allow POST requests
    if request.method != 'POST':
        return json_response(405, error_response('Method not allowed'))

    try:
        config = load_config()
    except ValueError as e:
        logger.error('Invalid configuration: %s', e)
        return json_response(500, error_response(str(e)))

    if not check_token(request.headers.get('authorization'), config['API_TOKEN']):
        return json_response(401, error_response('Unauthorized: Invalid or missing API token'))

    body = request.get_data()
    if len(body) > config['MAX_CONTENT_LENGTH']:
        return json_response(413, error_response(
            f'File too large ({len(body) / (1024*1024):.1f}MB). Maximum size is 50MB for serverless deployment.'
        ))

    if not config['TG_BOT_TOKEN'] or not config['TG_CHAT_ID']:
        return json_response(500, error_response('Telegram bot is not configured'))

    client = TelegramClient(
        config['TG_BOT_TOKEN'],
        config['TG_CHAT_ID'],
        retry=RetryPolicy(max_retries=config['TG_MAX_RETRIES']),
        timeout=config['TG_TIMEOUT'],
    )
    store = JsonMetadataStore(config['METADATA_PATH']) if config['METADATA_PATH'] else None

    try:
        # No form decoder here, the raw body always goes through the manual parser
        parts = parse_multipart_form(body, request.headers.get('content-type', ''))
        _, files = to_multidict(parts)
        result = upload_file(files.get('file'), client, store=store, domain=config['API_DOMAIN'])
    except (FormatError, UploadError) as e:
        logger.error('Upload error: %s', e)
        return json_response(500, error_response(str(e)))

    return json_response(200, result)
