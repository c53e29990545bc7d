"""Report generation.

A report is derived from a fully rated inspection and is not stored on its
own: generating one flips the inspection to REPORT_GENERATED, stamps
reportGeneratedAt and emits a REPORT_GENERATED event for the notifier.
"""

from .errors import IncompleteDataError, InspectionError, NotFoundError
from .id_utils import report_id_for
from .schemas import CHECKLIST_KEYS, REPORT_GENERATED
from .service import _require_id
from .store import checklist_complete
from .utils import _now_iso

CONDITION_SCORES = {'Good': 3, 'Fair': 2, 'Poor': 1}


def calculate_overall_condition(checklist: dict) -> str:
    values = [checklist.get(k) for k in CHECKLIST_KEYS]
    total = sum(CONDITION_SCORES.get(v, 0) for v in values)
    avg = total / len(values)
    if avg >= 2.5:
        return 'Good'
    if avg >= 1.5:
        return 'Fair'
    return 'Poor'


def missing_checklist_items(checklist) -> list:
    if not isinstance(checklist, dict):
        return list(CHECKLIST_KEYS)
    return [k for k in CHECKLIST_KEYS if checklist.get(k) is None]


def build_report(inspection: dict, generated_at: str) -> dict:
    checklist = {k: inspection['checklist'].get(k) for k in CHECKLIST_KEYS}
    images = list(inspection.get('images') or [])
    return {
        'reportId': report_id_for(inspection['inspectionId']),
        'inspectionId': inspection['inspectionId'],
        'generatedAt': generated_at,
        'propertyAddress': inspection.get('propertyAddress'),
        'inspector': {
            'name': inspection.get('inspectorName'),
            'email': inspection.get('inspectorEmail'),
        },
        'client': {
            'name': inspection.get('clientName'),
            'email': inspection.get('clientEmail'),
        },
        'summary': {
            'checklist': checklist,
            'overallCondition': calculate_overall_condition(checklist),
            'notes': inspection.get('notes') or '',
            'totalImages': len(images),
        },
        'images': images,
    }


def report_event(report: dict) -> dict:
    return {
        'type': REPORT_GENERATED,
        'inspectionId': report['inspectionId'],
        'reportId': report['reportId'],
        'propertyAddress': report['propertyAddress'],
        'inspectorEmail': report['inspector']['email'],
        'clientEmail': report['client']['email'],
        'generatedAt': report['generatedAt'],
    }


class ReportGenerator:

    def __init__(self, store, publisher=None, clock=_now_iso):
        self.store = store
        self.publisher = publisher
        self.clock = clock

    def generate(self, inspection_id: str):
        """Generate the report for ``inspection_id``.

        Returns ``(report, notification)`` where notification describes the
        event publish outcome. A failed publish does not undo the status change.
        """
        _require_id(inspection_id)
        inspection = self.store.get(inspection_id)
        if inspection is None:
            raise NotFoundError()

        missing = missing_checklist_items(inspection.get('checklist'))
        if missing:
            raise IncompleteDataError(details={'missing': missing})

        now = self.clock()
        # completeness is re-checked by the write itself
        updated = self.store.apply_patch(
            inspection_id,
            {'status': REPORT_GENERATED, 'reportGeneratedAt': now},
            now,
            condition=checklist_complete(),
            condition_error=IncompleteDataError('Inspection checklist changed while generating the report'),
        )

        report = build_report(updated, now)
        return report, self._notify(report)

    def _notify(self, report):
        if self.publisher is None or not self.publisher.enabled:
            return {'status': 'skipped'}
        try:
            message_id = self.publisher.publish(report_event(report))
        except InspectionError as e:
            return {'status': 'failed', 'error': e.message, 'details': e.details}
        return {'status': 'published', 'messageId': message_id}
