import json

import pytest

from inspection_api import config, lambda_function
from inspection_api.lambda_function import lambda_handler
from inspection_api.schemas import CHECKLIST_KEYS


def _event(method, resource, path, body=None, path_params=None, query=None):
    return {
        'httpMethod': method,
        'resource': resource,
        'path': path,
        'pathParameters': path_params,
        'queryStringParameters': query,
        'body': json.dumps(body) if body is not None else None,
    }


def _call(services, event):
    resp = lambda_handler(event, None, services=services)
    return resp['statusCode'], json.loads(resp['body']), resp['headers']


def _create(services, new_inspection):
    status, body, _ = _call(services, _event('POST', '/inspections', '/inspections', new_inspection))
    assert status == 201
    return body['inspection']['inspectionId']


def test_full_workflow(services, new_inspection):
    status, body, headers = _call(services, _event('POST', '/inspections', '/inspections', new_inspection))
    assert status == 201
    assert body['message'] == 'Inspection created successfully'
    assert headers['Access-Control-Allow-Origin'] == '*'
    iid = body['inspection']['inspectionId']

    status, body, _ = _call(services, _event('GET', '/inspections/{inspectionId}', f'/inspections/{iid}',
                                             path_params={'inspectionId': iid}))
    assert status == 200
    assert body['inspection']['status'] == 'DRAFT'

    checklist = {k: 'Good' for k in CHECKLIST_KEYS}
    status, body, _ = _call(services, _event('PUT', '/inspections/{inspectionId}', f'/inspections/{iid}',
                                             {'checklist': checklist, 'notes': 'All clear'}, {'inspectionId': iid}))
    assert status == 200
    assert body['inspection']['checklist'] == checklist

    status, body, _ = _call(services, _event('POST', '/inspections/{inspectionId}/report', f'/inspections/{iid}/report',
                                             path_params={'inspectionId': iid}))
    assert status == 200
    assert body['report']['summary']['overallCondition'] == 'Good'
    assert body['notification']['status'] == 'published'

    status, body, _ = _call(services, _event('GET', '/inspections', '/inspections', query={'status': 'report_generated'}))
    assert status == 200
    assert body['count'] == 1
    assert body['inspections'][0]['inspectionId'] == iid


def test_create_missing_fields_is_400(services, table):
    status, body, _ = _call(services, _event('POST', '/inspections', '/inspections', {'propertyAddress': '1 Main St'}))
    assert status == 400
    assert body['error'] == 'Missing required fields: inspectorName, inspectorEmail'
    assert table.items == {}


def test_malformed_json_is_400(services):
    event = _event('POST', '/inspections', '/inspections')
    event['body'] = '{not json'
    status, body, _ = _call(services, event)
    assert status == 400
    assert body['error'] == 'Invalid JSON body'


def test_get_unknown_is_404(services):
    status, body, _ = _call(services, _event('GET', '/inspections/{inspectionId}', '/inspections/insp_nope0000',
                                             path_params={'inspectionId': 'insp_nope0000'}))
    assert status == 404
    assert body == {'error': 'Inspection not found'}


def test_update_unknown_is_404(services):
    status, _, _ = _call(services, _event('PUT', '/inspections/{inspectionId}', '/inspections/insp_nope0000',
                                          {'notes': 'x'}, {'inspectionId': 'insp_nope0000'}))
    assert status == 404


def test_report_incomplete_is_400(services, new_inspection):
    iid = _create(services, new_inspection)
    status, body, _ = _call(services, _event('POST', '/inspections/{inspectionId}/report', f'/inspections/{iid}/report',
                                             path_params={'inspectionId': iid}))
    assert status == 400
    assert body['error'] == 'Inspection checklist is incomplete'
    assert body['details']['missing'] == list(CHECKLIST_KEYS)


def test_report_unknown_is_404(services):
    status, _, _ = _call(services, _event('POST', '/inspections/{inspectionId}/report', '/inspections/insp_x/report',
                                          path_params={'inspectionId': 'insp_x'}))
    assert status == 404


def test_routes_by_path_without_resource(services, new_inspection):
    iid = _create(services, new_inspection)

    status, body, _ = _call(services, {'httpMethod': 'GET', 'path': f'/prod/inspections/{iid}'})
    assert status == 200
    assert body['inspection']['inspectionId'] == iid

    status, body, _ = _call(services, {'httpMethod': 'GET', 'path': '/inspections/'})
    assert status == 200
    assert body['count'] == 1


def test_routes_http_api_events(services, new_inspection):
    iid = _create(services, new_inspection)
    event = {
        'routeKey': 'GET /inspections/{inspectionId}',
        'rawPath': f'/inspections/{iid}',
        'requestContext': {'http': {'method': 'GET'}},
        'pathParameters': {'inspectionId': iid},
    }
    status, body, _ = _call(services, event)
    assert status == 200
    assert body['inspection']['inspectionId'] == iid


def test_presigned_upload_and_download(services):
    status, body, _ = _call(services, _event('POST', '/presigned-url', '/presigned-url',
                                             {'inspectionId': 'insp_1a2b3c4d', 'fileName': 'roof.png', 'contentType': 'image/png'}))
    assert status == 200
    assert body['expiresIn'] == 300
    assert 'uploadUrl' in body and 'downloadUrl' not in body

    status, body, _ = _call(services, _event('POST', '/presigned-url', '/presigned-url',
                                             {'inspectionId': 'insp_1a2b3c4d', 'fileName': 'roof.png',
                                              'operation': 'download', 's3Key': body['s3Key']}))
    assert status == 200
    assert body['expiresIn'] == 3600
    assert 'downloadUrl' in body and 'uploadUrl' not in body


def test_presigned_missing_fields_is_400(services):
    status, body, _ = _call(services, _event('POST', '/presigned-url', '/presigned-url', {'inspectionId': 'insp_1a2b3c4d'}))
    assert status == 400
    assert body['error'] == 'Missing required fields: fileName'


def test_options_preflight():
    resp = lambda_handler({'httpMethod': 'OPTIONS', 'path': '/inspections'}, None)
    assert resp['statusCode'] == 204
    assert 'OPTIONS' in resp['headers']['Access-Control-Allow-Methods']


def test_unknown_route_is_404(services):
    status, body, _ = _call(services, {'httpMethod': 'DELETE', 'path': '/inspections/insp_1'})
    assert status == 404
    assert body == {'error': 'Route not found'}


def test_unexpected_error_is_500(services, monkeypatch):
    def boom(status=None):
        raise RuntimeError('kaboom')

    monkeypatch.setattr(services.inspections, 'list', boom)
    status, body, headers = _call(services, _event('GET', '/inspections', '/inspections'))
    assert status == 500
    assert body == {'error': 'Internal server error', 'details': 'kaboom'}
    assert headers['Content-Type'] == 'application/json'


def test_debug_messages_attached_when_enabled(services, monkeypatch):
    monkeypatch.setattr(config, 'ENABLE_DEBUG', True)
    status, body, _ = _call(services, _event('GET', '/inspections', '/inspections'))
    assert status == 200
    assert any('list_inspections' in m for m in body['debug'])


def test_services_built_once(monkeypatch, services):
    built = []

    def fake_build():
        built.append(1)
        return services

    monkeypatch.setattr('inspection_api.clients.build_services', fake_build)
    monkeypatch.setattr(lambda_function, '_services', None)

    lambda_handler(_event('GET', '/inspections', '/inspections'), None)
    lambda_handler(_event('GET', '/inspections', '/inspections'), None)
    assert built == [1]


@pytest.mark.parametrize('path', ['/inspections/a/b/c', '/presigned-url/extra'])
def test_unmatched_paths(services, path):
    status, _, _ = _call(services, {'httpMethod': 'POST', 'path': path})
    assert status == 404
