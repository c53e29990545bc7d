"""Single-table DynamoDB accessor for inspections.

Layout:
- PK = INSPECTION#<inspectionId>, SK = METADATA
- GSI1PK = STATUS#<status>, GSI1SK = createdAt (sparse status index)

PK/SK/GSI1PK/GSI1SK are store-internal and stripped from every record this
module returns. ``status`` and ``GSI1PK`` are only ever written together.
"""

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from . import config
from .errors import DuplicateIdError, NotFoundError, from_aws_error
from .schemas import CHECKLIST_KEYS, CONDITIONS
from .utils import _convert_decimals

PK_PREFIX = 'INSPECTION#'
SK_METADATA = 'METADATA'
STATUS_PREFIX = 'STATUS#'
INTERNAL_KEYS = ('PK', 'SK', 'GSI1PK', 'GSI1SK')

# Fields an update may touch; identity fields and createdAt are fixed at creation
PATCHABLE_FIELDS = ('checklist', 'notes', 'images', 'clientName', 'clientEmail', 'status', 'reportGeneratedAt')


def item_key(inspection_id: str) -> dict:
    return {'PK': PK_PREFIX + inspection_id, 'SK': SK_METADATA}


def status_key(status: str) -> str:
    return STATUS_PREFIX + status


def public_projection(item):
    if item is None:
        return None
    return _convert_decimals({k: v for k, v in item.items() if k not in INTERNAL_KEYS})


def checklist_complete():
    """Condition that holds only when every checklist key carries a rating."""
    condition = None
    for key in CHECKLIST_KEYS:
        rated = Attr(f'checklist.{key}').is_in(list(CONDITIONS))
        condition = rated if condition is None else condition & rated
    return condition


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def build_update(patch: dict, updated_at: str):
    """Turn a patch (field -> new value) into one SET expression.

    Returns (UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues).
    A ``checklist`` entry is written key by key so unspecified keys are kept.
    """
    names = {'#updatedAt': 'updatedAt'}
    values = {':updatedAt': updated_at}
    parts = ['#updatedAt = :updatedAt']

    for field, value in patch.items():
        if field not in PATCHABLE_FIELDS:
            raise ValueError(f'field {field!r} cannot be patched')

        if field == 'checklist':
            if not value:
                continue
            names['#checklist'] = 'checklist'
            for ck, cv in value.items():
                if ck not in CHECKLIST_KEYS:
                    raise ValueError(f'unknown checklist key {ck!r}')
                names[f'#ck_{ck}'] = ck
                values[f':ck_{ck}'] = cv
                parts.append(f'#checklist.#ck_{ck} = :ck_{ck}')
            continue

        names[f'#{field}'] = field
        values[f':{field}'] = value
        parts.append(f'#{field} = :{field}')
        if field == 'status':
            names['#GSI1PK'] = 'GSI1PK'
            values[':GSI1PK'] = status_key(value)
            parts.append('#GSI1PK = :GSI1PK')

    return 'SET ' + ', '.join(parts), names, values


class InspectionStore:

    def __init__(self, table, index_name=config.STATUS_INDEX_NAME):
        self.table = table
        self.index_name = index_name

    def put_new(self, record: dict) -> dict:
        """Write a new inspection. The put fails if the id already exists."""
        item = dict(record)
        item.update(item_key(record['inspectionId']))
        item['GSI1PK'] = status_key(record['status'])
        item['GSI1SK'] = record['createdAt']
        try:
            self.table.put_item(Item=item, ConditionExpression=Attr('PK').not_exists())
        except ClientError as e:
            if _is_conditional_failure(e):
                raise DuplicateIdError(record['inspectionId']) from e
            raise from_aws_error(e, 'put_item') from e
        except BotoCoreError as e:
            raise from_aws_error(e, 'put_item') from e
        return public_projection(item)

    def get(self, inspection_id: str):
        try:
            resp = self.table.get_item(Key=item_key(inspection_id), ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            raise from_aws_error(e, 'get_item') from e
        return public_projection(resp.get('Item'))

    def query_by_status(self, status: str) -> list:
        """Inspections with ``status``, most recently created first."""
        query_kwargs = {
            'IndexName': self.index_name,
            'KeyConditionExpression': Key('GSI1PK').eq(status_key(status)),
            'ScanIndexForward': False,
        }
        return self._collect(self.table.query, query_kwargs, 'query')

    def scan_all(self) -> list:
        """Every inspection, in no particular order."""
        scan_kwargs = {'FilterExpression': Attr('PK').begins_with(PK_PREFIX)}
        return self._collect(self.table.scan, scan_kwargs, 'scan')

    def apply_patch(self, inspection_id: str, patch: dict, updated_at: str, condition=None, condition_error=None):
        """Apply ``patch`` in one conditional update and return the new record.

        ``condition`` is ANDed with the existence check. A failed check raises
        ``condition_error`` when one is given, NotFoundError otherwise.
        """
        update_expr, names, values = build_update(patch, updated_at)
        condition_expr = Attr('PK').exists()
        if condition is not None:
            condition_expr = condition_expr & condition
        try:
            resp = self.table.update_item(
                Key=item_key(inspection_id),
                UpdateExpression=update_expr,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression=condition_expr,
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                if condition_error is not None:
                    raise condition_error from e
                raise NotFoundError() from e
            raise from_aws_error(e, 'update_item') from e
        except BotoCoreError as e:
            raise from_aws_error(e, 'update_item') from e
        return public_projection(resp.get('Attributes'))

    def _collect(self, call, kwargs, action):
        # follow LastEvaluatedKey until the result set is exhausted
        try:
            resp = call(**kwargs)
            items = list(resp.get('Items', []))
            while 'LastEvaluatedKey' in resp:
                kwargs['ExclusiveStartKey'] = resp['LastEvaluatedKey']
                resp = call(**kwargs)
                items.extend(resp.get('Items', []))
        except (ClientError, BotoCoreError) as e:
            raise from_aws_error(e, action) from e
        return [public_projection(it) for it in items]
