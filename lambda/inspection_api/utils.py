import json
from datetime import datetime, timezone
from decimal import Decimal

from . import config

CORS_HEADERS = {
    # Browser callers come from the SPA origin; lock this down per stage in production
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'Content-Type,Authorization',
    'Access-Control-Allow-Methods': 'OPTIONS,POST,GET,PUT',
    'Content-Type': 'application/json'
}


def _now_iso():
    # UTC so createdAt strings sort lexicographically in the status index
    return datetime.now(timezone.utc).isoformat()


def build_response(status_code, body):
    return {
        'statusCode': status_code,
        'headers': CORS_HEADERS,
        'body': json.dumps(body)
    }


def parse_body(event):
    """Return the JSON body of an API Gateway proxy event as a dict.

    Raises ValueError when the body is present but is not a JSON object.
    """
    raw = event.get('body')
    if not raw:
        return {}
    if isinstance(raw, dict):
        body = raw
    else:
        body = json.loads(raw)
    if not isinstance(body, dict):
        raise ValueError('request body must be a JSON object')

    # Some callers double-encode the payload as {"body": "<json>"}
    if isinstance(body.get('body'), str):
        try:
            nested = json.loads(body['body'])
        except ValueError:
            nested = None
        if isinstance(nested, dict):
            for k, v in nested.items():
                body.setdefault(k, v)
            body.pop('body', None)
    return body


def _convert_decimals(obj):
    """Recursively convert DynamoDB Decimal types to int/float for JSON serialization."""
    if isinstance(obj, list):
        return [_convert_decimals(item) for item in obj]
    elif isinstance(obj, dict):
        return {key: _convert_decimals(val) for key, val in obj.items()}
    elif isinstance(obj, Decimal):
        return int(obj) if obj % 1 == 0 else float(obj)
    else:
        return obj


def make_debug(enabled=None):
    """Build a per-invocation debug logger.

    Returns ``(debug, messages)``. ``debug(msg, *args, force=False)`` is a no-op
    unless debugging is enabled or ``force`` is passed; otherwise it prints to
    stdout (CloudWatch) and appends to ``messages``.
    """
    if enabled is None:
        enabled = config.ENABLE_DEBUG
    messages = []

    def debug(msg, *args, force=False):
        if not enabled and not force:
            return
        try:
            s = msg % args if args else str(msg)
        except (TypeError, ValueError):
            s = str(msg)
        messages.append(s)
        print(s)

    return debug, messages


def _parse_iso_to_timestamp(val):
    """Parse ISO date string to Unix timestamp for sorting. Returns 0 if invalid."""
    if not val:
        return 0
    try:
        dt = datetime.fromisoformat(str(val).replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp()
    except ValueError:
        return 0
