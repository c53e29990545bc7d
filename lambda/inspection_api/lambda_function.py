import json
import re
import traceback

from . import config
from .errors import InspectionError
from .handlers import (
    handle_create_inspection,
    handle_generate_report,
    handle_get_inspection,
    handle_list_inspections,
    handle_presigned_url,
    handle_update_inspection,
)
from .utils import build_response, make_debug

ROUTES = {
    ('POST', '/inspections'): handle_create_inspection,
    ('GET', '/inspections'): handle_list_inspections,
    ('GET', '/inspections/{inspectionId}'): handle_get_inspection,
    ('PUT', '/inspections/{inspectionId}'): handle_update_inspection,
    ('POST', '/inspections/{inspectionId}/report'): handle_generate_report,
    ('POST', '/presigned-url'): handle_presigned_url,
}


def _template_regex(template, stage_prefix=False):
    pattern = re.sub(r'\{(\w+)\}', r'(?P<\1>[^/]+)', template)
    prefix = r'^(?:/[^/]+)' if stage_prefix else r'^'
    return re.compile(prefix + pattern + r'/?$')


# exact paths first, then paths carrying a stage prefix ("/prod/inspections")
_ROUTE_PATTERNS = (
    [(method, _template_regex(template), template) for (method, template) in ROUTES]
    + [(method, _template_regex(template, stage_prefix=True), template) for (method, template) in ROUTES]
)

# Built on first request and reused for the lifetime of the container
_services = None


def get_services():
    global _services
    if _services is None:
        from .clients import build_services
        _services = build_services()
    return _services


def resolve_route(method, event):
    """Return (handler, path parameters) for the event, or (None, {})."""
    resource = event.get('resource')
    if resource and (method, resource) in ROUTES:
        return ROUTES[(method, resource)], {}
    # HTTP API (payload v2) events carry "GET /inspections/{inspectionId}"
    route_key = event.get('routeKey') or ''
    if ' ' in route_key:
        rk_method, rk_template = route_key.split(' ', 1)
        if (rk_method, rk_template) in ROUTES:
            return ROUTES[(rk_method, rk_template)], {}

    path = event.get('path') or event.get('rawPath') or ''
    for route_method, regex, template in _ROUTE_PATTERNS:
        if route_method != method:
            continue
        m = regex.match(path)
        if m:
            return ROUTES[(route_method, template)], m.groupdict()
    return None, {}


def lambda_handler(event, context, services=None):
    method = event.get('httpMethod') or event.get('requestContext', {}).get('http', {}).get('method')
    if method == 'OPTIONS':
        return build_response(204, {})

    debug, debug_msgs = make_debug()
    debug('lambda_function: %s %s', method, event.get('resource') or event.get('path'))

    try:
        handler, path_params = resolve_route(method, event)
        if handler is None:
            resp = build_response(404, {'error': 'Route not found'})
        else:
            if path_params:
                event = dict(event, pathParameters={**path_params, **(event.get('pathParameters') or {})})
            resp = handler(event, services or get_services(), debug)
    except InspectionError as e:
        if e.status_code >= 500:
            debug('lambda_function: %s: %s', e.message, e.details, force=True)
        resp = build_response(e.status_code, e.to_body())
    except Exception as e:
        debug('lambda handler dispatch failed: %s', e, force=True)
        debug(traceback.format_exc(), force=True)
        resp = build_response(500, {'error': 'Internal server error', 'details': str(e)})

    if config.ENABLE_DEBUG:
        body_json = json.loads(resp['body'])
        if isinstance(body_json, dict):
            body_json['debug'] = debug_msgs
            resp['body'] = json.dumps(body_json)
    return resp
