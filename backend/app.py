from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from backend.config import load_config
from backend.multipart_parser import FormatError
from backend.storage import JsonMetadataStore
from backend.telegram import RetryPolicy, TelegramClient, UploadError
from backend.uploader import check_token, error_response, read_upload_form, upload_file

app = Flask(__name__)
app.config.update(load_config())


def get_client():
    """Telegram client built from the current configuration"""
    if not app.config.get('TG_BOT_TOKEN') or not app.config.get('TG_CHAT_ID'):
        raise UploadError('Telegram bot is not configured')

    return TelegramClient(
        app.config['TG_BOT_TOKEN'],
        app.config['TG_CHAT_ID'],
        retry=RetryPolicy(max_retries=app.config['TG_MAX_RETRIES']),
        timeout=app.config['TG_TIMEOUT'],
    )


def get_store():
    path = app.config.get('METADATA_PATH')
    return JsonMetadataStore(path) if path else None


@app.after_request
def add_cors_headers(response):
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
    return response


@app.errorhandler(RequestEntityTooLarge)
def too_large_handler(e):
    max_mb = app.config['MAX_CONTENT_LENGTH'] / (1024 * 1024)
    return jsonify(error_response(f'File too large. Maximum size is {max_mb:.0f}MB.')), 413


@app.errorhandler(HTTPException)
def http_error_handler(e):
    return jsonify(error_response(e.description)), e.code


@app.errorhandler(Exception)
def unexpected_error_handler(e):
    app.logger.exception('Unhandled error')
    return jsonify(error_response(f'Processing error: {str(e)}')), 500


@app.route('/upload', methods=['POST'])
@app.route('/api/upload', methods=['POST'])
def upload_handler():
    """Store the uploaded ``file`` field in Telegram"""
    if not check_token(request.headers.get('Authorization'), app.config.get('API_TOKEN')):
        return jsonify(error_response('Unauthorized: Invalid or missing API token')), 401

    try:
        _, files = read_upload_form(request)
        result = upload_file(
            files.get('file'),
            get_client(),
            store=get_store(),
            domain=app.config['API_DOMAIN'],
        )
    except (FormatError, UploadError) as e:
        app.logger.error(f'Upload error: {e}')
        return jsonify(error_response(str(e))), 500

    return jsonify(result)


@app.route('/api/health', methods=['GET'])
def health_handler():
    """Health check handler"""
    return jsonify({'status': 'healthy', 'service': 'telegram-filebed'})


# Main handler function for Vercel
def handler(request):
    """Main serverless handler for Vercel"""
    with app.test_request_context(
        path=request.url.path,
        method=request.method,
        headers=dict(request.headers),
        data=request.get_data(),
        query_string=request.url.query
    ):
        return app.full_dispatch_request()


if __name__ == '__main__':
    app.run(debug=True)
