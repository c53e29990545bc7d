from .errors import DuplicateIdError, NotFoundError, ValidationError
from .id_utils import new_inspection_id
from .schemas import CreateInspectionRequest, UpdateInspectionRequest, empty_checklist, parse_payload
from .utils import _now_iso, _parse_iso_to_timestamp

DRAFT = 'DRAFT'
# fresh ids drawn before a create gives up on collisions
CREATE_ATTEMPTS = 3


def _require_id(inspection_id):
    if not inspection_id or not isinstance(inspection_id, str):
        raise ValidationError('Missing inspectionId parameter')


class InspectionService:
    """Create / read / list / partially update inspections."""

    def __init__(self, store, clock=_now_iso):
        self.store = store
        self.clock = clock

    def create(self, payload: dict) -> dict:
        req = parse_payload(CreateInspectionRequest, payload)
        now = self.clock()
        record = {
            'propertyAddress': req.propertyAddress,
            'inspectorName': req.inspectorName,
            'inspectorEmail': req.inspectorEmail,
            'clientName': req.clientName,
            'clientEmail': req.clientEmail,
            'status': DRAFT,
            'createdAt': now,
            'updatedAt': now,
            'checklist': empty_checklist(),
            'notes': '',
            'images': [],
        }
        for attempt in range(1, CREATE_ATTEMPTS + 1):
            record['inspectionId'] = new_inspection_id()
            try:
                return self.store.put_new(record)
            except DuplicateIdError:
                if attempt == CREATE_ATTEMPTS:
                    raise

    def get(self, inspection_id: str) -> dict:
        _require_id(inspection_id)
        inspection = self.store.get(inspection_id)
        if inspection is None:
            raise NotFoundError()
        return inspection

    def list(self, status=None) -> dict:
        status = (status or '').strip().upper()
        if status:
            # index is ordered by createdAt, queried newest first
            inspections = self.store.query_by_status(status)
        else:
            inspections = self.store.scan_all()
            inspections.sort(key=lambda it: _parse_iso_to_timestamp(it.get('createdAt')), reverse=True)
        return {'count': len(inspections), 'inspections': inspections}

    def update(self, inspection_id: str, payload: dict) -> dict:
        _require_id(inspection_id)
        req = parse_payload(UpdateInspectionRequest, payload)
        return self.store.apply_patch(inspection_id, req.to_patch(), self.clock())
