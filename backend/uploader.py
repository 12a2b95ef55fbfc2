import logging
from typing import Any, Dict, Optional, Tuple

from werkzeug.datastructures import FileStorage, MultiDict

from backend.multipart_parser import parse_multipart_form, to_multidict
from backend.storage import file_metadata
from backend.telegram import TelegramClient, UploadError, choose_endpoint, get_file_id

logger = logging.getLogger(__name__)


def check_token(auth_header: Optional[str], api_token: Optional[str]) -> bool:
    """Bearer token check, disabled when no token is configured"""
    if not api_token:
        return True
    return auth_header == f'Bearer {api_token}'


def read_upload_form(request) -> Tuple[MultiDict, MultiDict]:
    """Return ``(form, files)`` for a Flask request, parsing the raw body if werkzeug cannot"""
    # Cache the body first, form parsing would otherwise consume the stream
    body = request.get_data(cache=True)

    try:
        files = request.files
        form = request.form
        if files:
            return form, files
    except ValueError as e:
        logger.info('Standard form parsing failed (%s), trying manual parsing', e)
    else:
        logger.info('Standard form parsing found no files, trying manual parsing')

    parts = parse_multipart_form(body, request.headers.get('Content-Type', ''))
    return to_multidict(parts)


def file_extension(filename: str) -> str:
    return filename.rsplit('.', 1)[-1].lower()


def build_upload_response(file_id: str, extension: str, filename: str, size: int,
                          mimetype: str, domain: str) -> Dict[str, Any]:
    """Lsky-Pro compatible success payload"""
    name = f'{file_id}.{extension}'
    url = f'{domain}/file/{name}'

    return {
        'status': True,
        'message': 'success',
        'data': {
            'key': file_id,
            'name': name,
            'pathname': f'/file/{name}',
            'origin_name': filename,
            'size': size,
            'mimetype': mimetype,
            'extension': extension,
            'links': {
                'url': url,
                'html': f'<img src="{url}" alt="{filename}" />',
                'bbcode': f'[img]{url}[/img]',
                'markdown': f'![{filename}]({url})',
                'markdown_with_link': f'[![{filename}]({url})]({url})',
                'thumbnail_url': url,
            },
        },
    }


def error_response(message: str) -> Dict[str, Any]:
    return {'status': False, 'message': message, 'data': None}


def upload_file(file: Optional[FileStorage], client: TelegramClient, store=None,
                domain: str = '') -> Dict[str, Any]:
    """Send an uploaded file to Telegram and describe where it can be fetched"""
    if file is None:
        raise UploadError('No file uploaded')

    filename = file.filename or ''
    data = file.read()
    mimetype = file.mimetype or 'application/octet-stream'
    extension = file_extension(filename)

    endpoint, field = choose_endpoint(mimetype)
    result = client.send(endpoint, field, filename, data, mimetype)

    file_id = get_file_id(result)
    if not file_id:
        raise UploadError('Failed to get file ID')

    if store is not None:
        store.put(f'{file_id}.{extension}', file_metadata(filename, len(data)))

    return build_upload_response(file_id, extension, filename, len(data), mimetype, domain)
