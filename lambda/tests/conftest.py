import copy
import itertools
from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError

from inspection_api.clients import Services
from inspection_api.images import ImageReferenceService
from inspection_api.publisher import ReportEventPublisher
from inspection_api.report import ReportGenerator
from inspection_api.service import InspectionService
from inspection_api.store import InspectionStore

TOPIC_ARN = 'arn:aws:sns:ap-southeast-1:123456789012:inspection-reports'


def client_error(code, operation='UpdateItem'):
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


_MISSING = object()


def _resolve(item, path):
    target = item
    for segment in path.split('.'):
        if not isinstance(target, dict) or segment not in target:
            return _MISSING
        target = target[segment]
    return target


def _condition_holds(condition, existing):
    expr = condition.get_expression()
    operator, operands = expr['operator'], expr['values']
    if operator == 'AND':
        return all(_condition_holds(c, existing) for c in operands)
    if operator == 'NOT':
        return not _condition_holds(operands[0], existing)

    value = _MISSING if existing is None else _resolve(existing, operands[0].name)
    if operator == 'attribute_exists':
        return value is not _MISSING
    if operator == 'attribute_not_exists':
        return value is _MISSING
    if operator == 'IN':
        return value is not _MISSING and value in operands[1]
    raise AssertionError(f'unsupported condition {expr}')


class FakeTable:
    """In-memory stand-in for a boto3 DynamoDB Table.

    Understands the expressions InspectionStore emits: SET clauses with name
    and value placeholders (including nested paths), attribute_(not_)exists and
    IN conditions joined by AND/NOT, an equality key condition on the index
    and a begins_with scan filter. ``page_size`` forces LastEvaluatedKey pagination.
    """

    def __init__(self, page_size=None):
        self.items = {}
        self.calls = []
        self.page_size = page_size

    def put_item(self, Item, ConditionExpression=None):
        self.calls.append(('put_item', {'Item': Item}))
        key = (Item['PK'], Item['SK'])
        if ConditionExpression is not None and not _condition_holds(ConditionExpression, self.items.get(key)):
            raise client_error('ConditionalCheckFailedException', 'PutItem')
        self.items[key] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key, ConsistentRead=False):
        self.calls.append(('get_item', {'Key': Key}))
        item = self.items.get((Key['PK'], Key['SK']))
        return {'Item': copy.deepcopy(item)} if item is not None else {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues,
                    ConditionExpression=None, ReturnValues=None):
        self.calls.append(('update_item', {
            'Key': Key,
            'UpdateExpression': UpdateExpression,
            'ExpressionAttributeNames': ExpressionAttributeNames,
            'ExpressionAttributeValues': ExpressionAttributeValues,
        }))
        key = (Key['PK'], Key['SK'])
        existing = self.items.get(key)
        if ConditionExpression is not None and not _condition_holds(ConditionExpression, existing):
            raise client_error('ConditionalCheckFailedException')

        item = copy.deepcopy(existing) if existing is not None else dict(Key)
        assert UpdateExpression.startswith('SET ')
        for clause in UpdateExpression[len('SET '):].split(', '):
            path, placeholder = [s.strip() for s in clause.split(' = ')]
            segments = [ExpressionAttributeNames.get(p, p) for p in path.split('.')]
            target = item
            for seg in segments[:-1]:
                target = target[seg]
            target[segments[-1]] = copy.deepcopy(ExpressionAttributeValues[placeholder])
        self.items[key] = item
        return {'Attributes': copy.deepcopy(item)}

    def query(self, IndexName, KeyConditionExpression, ScanIndexForward=True, ExclusiveStartKey=None):
        self.calls.append(('query', {'IndexName': IndexName, 'ExclusiveStartKey': ExclusiveStartKey}))
        expr = KeyConditionExpression.get_expression()
        assert expr['operator'] == '='
        attr, value = expr['values'][0].name, expr['values'][1]
        matched = [it for it in self.items.values() if it.get(attr) == value]
        matched.sort(key=lambda it: it['GSI1SK'], reverse=not ScanIndexForward)
        return self._page(matched, ExclusiveStartKey)

    def scan(self, FilterExpression, ExclusiveStartKey=None):
        self.calls.append(('scan', {'ExclusiveStartKey': ExclusiveStartKey}))
        expr = FilterExpression.get_expression()
        assert expr['operator'] == 'begins_with'
        attr, prefix = expr['values'][0].name, expr['values'][1]
        matched = [it for it in self.items.values() if str(it.get(attr, '')).startswith(prefix)]
        return self._page(matched, ExclusiveStartKey)

    def _page(self, matched, start_key):
        offset = start_key['offset'] if start_key else 0
        if not self.page_size:
            return {'Items': copy.deepcopy(matched[offset:])}
        page = matched[offset:offset + self.page_size]
        resp = {'Items': copy.deepcopy(page)}
        if offset + self.page_size < len(matched):
            resp['LastEvaluatedKey'] = {'offset': offset + self.page_size}
        return resp


class FakeS3:
    def __init__(self):
        self.presigned = []

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self.presigned.append({'ClientMethod': ClientMethod, 'Params': Params, 'ExpiresIn': ExpiresIn})
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


class FakeSNS:
    def __init__(self, fail_with=None):
        self.published = []
        self.fail_with = fail_with

    def publish(self, **kwargs):
        if self.fail_with is not None:
            raise self.fail_with
        self.published.append(kwargs)
        return {'MessageId': f'msg-{len(self.published)}'}


def make_clock(start='2026-01-01T00:00:00+00:00'):
    """Clock returning strictly increasing ISO timestamps, one second apart."""
    base = datetime.fromisoformat(start).astimezone(timezone.utc)
    counter = itertools.count()
    return lambda: (base + timedelta(seconds=next(counter))).isoformat()


@pytest.fixture
def table():
    return FakeTable()


@pytest.fixture
def store(table):
    return InspectionStore(table, index_name='GSI1')


@pytest.fixture
def clock():
    return make_clock()


@pytest.fixture
def sns():
    return FakeSNS()


@pytest.fixture
def s3():
    return FakeS3()


@pytest.fixture
def inspections(store, clock):
    return InspectionService(store, clock=clock)


@pytest.fixture
def reports(store, sns, clock):
    return ReportGenerator(store, ReportEventPublisher(sns, TOPIC_ARN), clock=clock)


@pytest.fixture
def images(s3):
    return ImageReferenceService(s3, 'test-bucket', upload_expires=300, download_expires=3600)


@pytest.fixture
def services(inspections, reports, images):
    return Services(inspections=inspections, reports=reports, images=images)


@pytest.fixture
def new_inspection():
    return {
        'propertyAddress': '12 Orchard Road',
        'inspectorName': 'Alex Tan',
        'inspectorEmail': 'alex@inspect.example',
        'clientName': 'Jordan Lee',
        'clientEmail': 'jordan@example.com',
    }
