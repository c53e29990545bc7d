import re
import uuid

INSPECTION_PREFIX = 'insp'
IMAGE_PREFIX = 'img'
REPORT_PREFIX = 'report'
IMAGE_KEY_ROOT = 'inspections'

_ID_RE = re.compile(r'^[A-Za-z0-9_-]+$')


def _short_uuid():
    return uuid.uuid4().hex[:8]


def new_inspection_id() -> str:
    return f'{INSPECTION_PREFIX}_{_short_uuid()}'


def new_image_id() -> str:
    return f'{IMAGE_PREFIX}_{_short_uuid()}'


def report_id_for(inspection_id: str) -> str:
    return f'{REPORT_PREFIX}_{inspection_id}'


def validate_id(id_value, expected_prefix=None):
    """Validate that ``id_value`` is a safe path/key segment.

    Returns (True, 'ok') on success or (False, 'error message') on failure.
    """
    if not id_value or not isinstance(id_value, str):
        return False, 'id must be a non-empty string'
    if expected_prefix and not id_value.startswith(expected_prefix + '_'):
        return False, f'id must start with {expected_prefix}_'
    if not _ID_RE.match(id_value):
        return False, 'id contains invalid characters'
    if len(id_value) > 250:
        return False, 'id length out of range'
    return True, 'ok'


def file_extension(filename: str) -> str:
    # preserve extension if present ("photo.JPG" -> "jpg", "README" -> "")
    base = (filename or '').rsplit('/', 1)[-1]
    if '.' not in base:
        return ''
    return base.rsplit('.', 1)[-1].lower()


def image_key_prefix(inspection_id: str) -> str:
    return f'{IMAGE_KEY_ROOT}/{inspection_id}/'


def generate_image_key(inspection_id: str, image_id: str, filename: str) -> str:
    # Standardized key: inspections/{inspectionId}/{imageId}.{ext}
    ext = file_extension(filename)
    key = image_key_prefix(inspection_id) + image_id
    return f'{key}.{ext}' if ext else key


def image_id_from_key(key: str) -> str:
    stem = key.rsplit('/', 1)[-1]
    return stem.split('.', 1)[0]
