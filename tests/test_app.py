import io
import json
from types import SimpleNamespace

import pytest

import backend.app


@pytest.fixture
def telegram(monkeypatch, fake_client):
    monkeypatch.setattr(backend.app, 'get_client', lambda: fake_client)
    return fake_client


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'
    assert response.headers['Access-Control-Allow-Origin'] == '*'


def test_preflight(client):
    response = client.open('/upload', method='OPTIONS')
    assert response.status_code == 200
    assert 'POST' in response.headers['Access-Control-Allow-Methods']
    assert 'Authorization' in response.headers['Access-Control-Allow-Headers']


def test_upload_standard_form(client, telegram, app):
    response = client.post('/upload', data={
        'file': (io.BytesIO(b'%PDF-1.7'), 'report.pdf', 'application/pdf'),
    }, content_type='multipart/form-data')

    assert response.status_code == 200
    payload = response.get_json()
    assert payload['status'] is True
    assert payload['data']['name'] == 'BQACAgIAAxkBAAIB.pdf'
    assert payload['data']['links']['url'] == 'https://img.example.com/file/BQACAgIAAxkBAAIB.pdf'
    telegram.send.assert_called_once_with('sendDocument', 'document', 'report.pdf', b'%PDF-1.7', 'application/pdf')

    with open(app.config['METADATA_PATH']) as f:
        stored = json.load(f)
    assert stored['BQACAgIAAxkBAAIB.pdf']['fileName'] == 'report.pdf'


def test_upload_raw_body_without_leading_crlf(client, telegram):
    # Some clients omit the line break after the first boundary
    body = (
        b'--XyZ'
        b'Content-Disposition: form-data; name="file"; filename="song.mp3"\r\n'
        b'Content-Type: audio/mpeg\r\n\r\n'
        b'ID3\x03\x00\r\n'
        b'--XyZ--\r\n'
    )
    response = client.post('/api/upload', data=body, content_type='multipart/form-data; boundary=XyZ')

    assert response.status_code == 200
    telegram.send.assert_called_once_with('sendAudio', 'audio', 'song.mp3', b'ID3\x03\x00', 'audio/mpeg')


def test_upload_requires_token(client, telegram, monkeypatch, app):
    monkeypatch.setitem(app.config, 'API_TOKEN', 's3cret')

    response = client.post('/upload', data={'file': (io.BytesIO(b'x'), 'x.txt')},
                           content_type='multipart/form-data')
    assert response.status_code == 401
    assert response.get_json() == {
        'status': False,
        'message': 'Unauthorized: Invalid or missing API token',
        'data': None,
    }
    telegram.send.assert_not_called()

    response = client.post('/upload', data={'file': (io.BytesIO(b'x'), 'x.txt')},
                           content_type='multipart/form-data',
                           headers={'Authorization': 'Bearer s3cret'})
    assert response.status_code == 200


def test_upload_without_file(client, telegram):
    response = client.post('/upload', data={'title': 'no attachment'}, content_type='multipart/form-data')
    assert response.status_code == 500
    assert response.get_json()['message'] == 'No file uploaded'


def test_upload_wrong_content_type(client, telegram):
    response = client.post('/upload', data=b'hello', content_type='text/plain')
    assert response.status_code == 500
    assert response.get_json()['message'] == 'Content-Type must be multipart/form-data'


def test_upload_telegram_not_configured(client, monkeypatch, app):
    monkeypatch.setitem(app.config, 'TG_BOT_TOKEN', None)

    response = client.post('/upload', data={'file': (io.BytesIO(b'x'), 'x.txt')},
                           content_type='multipart/form-data')
    assert response.status_code == 500
    assert response.get_json()['message'] == 'Telegram bot is not configured'


def test_upload_too_large(client, telegram, monkeypatch, app):
    monkeypatch.setitem(app.config, 'MAX_CONTENT_LENGTH', 16)

    response = client.post('/upload', data={'file': (io.BytesIO(b'x' * 1024), 'big.bin')},
                           content_type='multipart/form-data')
    assert response.status_code == 413
    assert response.get_json()['status'] is False
    telegram.send.assert_not_called()


def test_unknown_route(client):
    response = client.get('/nope')
    assert response.status_code == 404
    assert response.get_json()['status'] is False


def test_serverless_handler(app):
    request = SimpleNamespace(
        url=SimpleNamespace(path='/api/health', query=''),
        method='GET',
        headers={},
        get_data=lambda: b'',
    )
    response = backend.app.handler(request)
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_serverless_handler_upload_raw_body(app, telegram):
    # No line break after the first boundary, so only the manual parser finds the file
    body = (
        b'--RawB'
        b'Content-Disposition: form-data; name="file"; filename="clip.mp4"\r\n'
        b'Content-Type: video/mp4\r\n\r\n'
        b'\x00\x00\x00\x18ftyp\r\n'
        b'--RawB--'
    )
    request = SimpleNamespace(
        url=SimpleNamespace(path='/api/upload', query=''),
        method='POST',
        headers={'Content-Type': 'multipart/form-data; boundary=RawB'},
        get_data=lambda: body,
    )
    response = backend.app.handler(request)

    assert response.status_code == 200
    assert response.get_json()['data']['name'] == 'BQACAgIAAxkBAAIB.mp4'
    telegram.send.assert_called_once_with('sendVideo', 'video', 'clip.mp4', b'\x00\x00\x00\x18ftyp', 'video/mp4')
