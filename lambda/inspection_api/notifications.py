"""SQS-triggered notifier for report events.

SNS (report topic) -> SQS -> this Lambda. Each SQS record is handled on its
own: a bad record is reported in the results and listed in
``batchItemFailures`` so SQS redelivers only that record, while the rest of
the batch completes. Actual e-mail delivery is an injected ``sender``
callable; without one the resolved messages are only logged.
"""

import json
import traceback
from datetime import datetime, timezone

from .schemas import REPORT_GENERATED, NotificationEvent, parse_payload
from .utils import make_debug

INSPECTOR_SUBJECT = 'Inspection Report Ready - {address}'
CLIENT_SUBJECT = 'Property Inspection Report Available - {address}'

INSPECTOR_BODY = (
    'Your inspection report for {address} has been generated.\n\n'
    'Inspection ID: {inspection_id}\n'
    'Generated At: {generated_at}\n\n'
    'You can view the full report in the inspection platform.\n'
)
CLIENT_BODY = (
    'The inspection report for {address} is now available.\n\n'
    'Inspection ID: {inspection_id}\n'
    'Generated At: {generated_at}\n\n'
    'Please log in to view the detailed report.\n'
)


def _format_timestamp(value):
    try:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return str(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime('%d %b %Y, %H:%M UTC')


def parse_record(record: dict) -> NotificationEvent:
    """Decode one SQS record, unwrapping the SNS envelope when present."""
    body = json.loads(record.get('body') or '{}')
    if isinstance(body, dict) and isinstance(body.get('Message'), str):
        body = json.loads(body['Message'])
    return parse_payload(NotificationEvent, body)


def resolve_messages(event: NotificationEvent) -> list:
    fmt = {
        'address': event.propertyAddress,
        'inspection_id': event.inspectionId,
        'generated_at': _format_timestamp(event.generatedAt),
    }
    report_id = event.reportId or event.inspectionId
    messages = [{
        'to': event.inspectorEmail,
        'subject': INSPECTOR_SUBJECT.format(**fmt),
        'body': INSPECTOR_BODY.format(**fmt),
        'dedupeKey': f'{report_id}:{event.inspectorEmail}',
    }]
    if event.clientEmail:
        messages.append({
            'to': event.clientEmail,
            'subject': CLIENT_SUBJECT.format(**fmt),
            'body': CLIENT_BODY.format(**fmt),
            'dedupeKey': f'{report_id}:{event.clientEmail}',
        })
    return messages


class NotificationDispatcher:

    def __init__(self, sender=None):
        self.sender = sender

    def process_record(self, record: dict, debug) -> dict:
        event = parse_record(record)
        if event.type != REPORT_GENERATED:
            debug('notifications: ignoring event type %s', event.type)
            return {'recordId': record.get('messageId'), 'status': 'ignored', 'type': event.type}

        messages = resolve_messages(event)
        for message in messages:
            if self.sender is None:
                debug('notifications: would send to %s: %s', message['to'], message['subject'])
            else:
                self.sender(message)
        return {
            'inspectionId': event.inspectionId,
            'status': 'notifications_sent',
            'recipients': [m['to'] for m in messages],
        }

    def process_batch(self, records: list, debug):
        """Process every record; returns (results, failed message ids)."""
        results = []
        failures = []
        for record in records:
            try:
                results.append(self.process_record(record, debug))
            except Exception as e:
                debug('notifications: error processing record %s: %s', record.get('messageId'), e, force=True)
                debug(traceback.format_exc())
                results.append({'recordId': record.get('messageId'), 'status': 'error', 'error': str(e)})
                if record.get('messageId'):
                    failures.append(record['messageId'])
        return results, failures


def lambda_handler(event, context, dispatcher=None):
    debug, _ = make_debug()
    dispatcher = dispatcher or NotificationDispatcher()
    records = event.get('Records') or []
    debug('notifications: received %d records', len(records))

    results, failures = dispatcher.process_batch(records, debug)
    debug('notifications: processing complete: %s', results)

    return {
        'statusCode': 200,
        'body': json.dumps({'processed': len(results), 'results': results}),
        'batchItemFailures': [{'itemIdentifier': mid} for mid in failures],
    }
