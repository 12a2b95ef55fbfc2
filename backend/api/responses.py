import json

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
}


def cors_headers(methods):
    return {**CORS_HEADERS, 'Access-Control-Allow-Methods': methods}


def preflight_response(methods):
    return {'statusCode': 200, 'headers': cors_headers(methods), 'body': ''}


def json_response(status_code, payload, methods):
    return {
        'statusCode': status_code,
        'body': json.dumps(payload),
        'headers': {'Content-Type': 'application/json', **cors_headers(methods)}
    }
