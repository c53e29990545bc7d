"""One function per API route.

Each handler takes the API Gateway proxy event, the Services container and
the invocation's debug logger, and returns a proxy response. Domain errors
are raised and turned into responses by lambda_function.
"""

from .errors import ValidationError
from .schemas import PresignedUrlRequest, parse_payload
from .utils import build_response, parse_body


def _body(event):
    try:
        return parse_body(event)
    except ValueError as e:
        raise ValidationError('Invalid JSON body', details=str(e)) from e


def _path_id(event):
    inspection_id = (event.get('pathParameters') or {}).get('inspectionId')
    if not inspection_id:
        raise ValidationError('Missing inspectionId parameter')
    return inspection_id


def handle_create_inspection(event, services, debug):
    inspection = services.inspections.create(_body(event))
    debug('create_inspection: created %s', inspection['inspectionId'])
    return build_response(201, {'message': 'Inspection created successfully', 'inspection': inspection})


def handle_get_inspection(event, services, debug):
    inspection = services.inspections.get(_path_id(event))
    return build_response(200, {'inspection': inspection})


def handle_list_inspections(event, services, debug):
    status = (event.get('queryStringParameters') or {}).get('status')
    result = services.inspections.list(status)
    debug('list_inspections: status=%s returned %d', status, result['count'])
    return build_response(200, result)


def handle_update_inspection(event, services, debug):
    inspection_id = _path_id(event)
    body = _body(event)
    debug('update_inspection: %s fields=%s', inspection_id, sorted(body))
    inspection = services.inspections.update(inspection_id, body)
    return build_response(200, {'message': 'Inspection updated successfully', 'inspection': inspection})


def handle_generate_report(event, services, debug):
    inspection_id = _path_id(event)
    report, notification = services.reports.generate(inspection_id)
    if notification['status'] == 'failed':
        # report is already persisted; the event is lost for this attempt
        debug('generate_report: publish failed for %s: %s', inspection_id, notification.get('details'), force=True)
    debug('generate_report: %s overall=%s notification=%s', inspection_id,
          report['summary']['overallCondition'], notification['status'])
    return build_response(200, {'message': 'Report generated successfully', 'report': report, 'notification': notification})


def handle_presigned_url(event, services, debug):
    req = parse_payload(PresignedUrlRequest, _body(event))
    if req.operation == 'download':
        grant = services.images.issue_download_grant(req.inspectionId, s3_key=req.s3Key, file_name=req.fileName)
    else:
        grant = services.images.issue_upload_grant(req.inspectionId, req.fileName, req.contentType)
    debug('presigned_url: %s %s', req.operation, grant['s3Key'])
    return build_response(200, grant)
