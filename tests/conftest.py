from unittest.mock import Mock

import pytest

from backend.app import app as flask_app

BOUNDARY = '----WebKitFormBoundary7MA4YWxkTrZu0gW'


def make_multipart_body(boundary, fields) -> bytes:
    # fields: list of (name, filename, content_type, value)
    chunks = []
    for name, filename, content_type, value in fields:
        chunks.append(f'--{boundary}\r\n'.encode())
        disp = f'form-data; name="{name}"'
        if filename:
            disp += f'; filename="{filename}"'
        chunks.append(f'Content-Disposition: {disp}\r\n'.encode())
        if content_type:
            chunks.append(f'Content-Type: {content_type}\r\n'.encode())
        chunks.append(b'\r\n')
        if isinstance(value, str):
            value = value.encode()
        chunks.append(value + b'\r\n')
    chunks.append(f'--{boundary}--\r\n'.encode())
    return b''.join(chunks)


def _telegram_result(kind='document', file_id='BQACAgIAAxkBAAIB'):
    if kind == 'photo':
        result = {'photo': [
            {'file_id': 'small', 'file_size': 1200},
            {'file_id': file_id, 'file_size': 90210},
            {'file_id': 'medium', 'file_size': 14000},
        ]}
    else:
        result = {kind: {'file_id': file_id, 'file_size': 5}}
    return {'ok': True, 'result': result}


@pytest.fixture
def multipart_body():
    return make_multipart_body


@pytest.fixture
def fake_client():
    client = Mock()
    client.send.return_value = _telegram_result()
    return client


@pytest.fixture
def app(monkeypatch, tmp_path):
    monkeypatch.setitem(flask_app.config, 'TESTING', True)
    monkeypatch.setitem(flask_app.config, 'API_TOKEN', None)
    monkeypatch.setitem(flask_app.config, 'TG_BOT_TOKEN', '123456:test-token')
    monkeypatch.setitem(flask_app.config, 'TG_CHAT_ID', '-1001234567890')
    monkeypatch.setitem(flask_app.config, 'API_DOMAIN', 'https://img.example.com')
    monkeypatch.setitem(flask_app.config, 'METADATA_PATH', str(tmp_path / 'metadata.json'))
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def telegram_result():
    return _telegram_result
