from typing import Dict, List, Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ValidationError

CHECKLIST_KEYS = ('roof', 'foundation', 'plumbing', 'electrical', 'hvac')
Condition = Literal['Good', 'Fair', 'Poor']
CONDITIONS = ('Good', 'Fair', 'Poor')

REPORT_GENERATED = 'REPORT_GENERATED'


# Small helper to normalize snake_case -> camelCase keys (for compatibility)
def to_camel_case_keys(d: dict) -> dict:
    out = {}
    for k, v in d.items():
        parts = k.split('_')
        if len(parts) == 1:
            out[k] = v
        else:
            out[parts[0] + ''.join(p.capitalize() for p in parts[1:])] = v
    return out


def empty_checklist() -> dict:
    return {k: None for k in CHECKLIST_KEYS}


class CreateInspectionRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    propertyAddress: str = Field(..., min_length=1)
    inspectorName: str = Field(..., min_length=1)
    inspectorEmail: str = Field(..., min_length=1)
    clientName: str = ''
    clientEmail: str = ''

    @field_validator('clientName', 'clientEmail', mode='before')
    @classmethod
    def _none_to_empty(cls, v):
        return '' if v is None else v


class ImageReference(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    imageId: str = Field(..., min_length=1)
    s3Key: str = Field(..., min_length=1)
    description: str = ''
    uploadedAt: Optional[str] = None

    @field_validator('description', mode='before')
    @classmethod
    def _none_to_empty(cls, v):
        return '' if v is None else v


class UpdateInspectionRequest(BaseModel):
    """Partial update. Fields left as None are not touched."""
    model_config = ConfigDict(str_strip_whitespace=True)

    checklist: Optional[Dict[str, Optional[Condition]]] = None
    notes: Optional[str] = None
    images: Optional[List[ImageReference]] = None
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    status: Optional[str] = None

    @field_validator('checklist')
    @classmethod
    def _known_checklist_keys(cls, v):
        if v is None:
            return v
        unknown = sorted(set(v) - set(CHECKLIST_KEYS))
        if unknown:
            raise ValueError(f"unknown checklist keys: {', '.join(unknown)}")
        return v

    @field_validator('status')
    @classmethod
    def _blank_status(cls, v):
        # empty status is ignored, like an absent one; anything else is stored as given
        return v or None

    def to_patch(self) -> dict:
        patch = {}
        for name in ('checklist', 'notes', 'clientName', 'clientEmail', 'status'):
            value = getattr(self, name)
            if value is not None:
                patch[name] = value
        if self.images is not None:
            patch['images'] = [img.model_dump() for img in self.images]
        return patch


class PresignedUrlRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    inspectionId: str = Field(..., min_length=1)
    fileName: str = Field(..., min_length=1)
    contentType: Optional[str] = None
    operation: Literal['upload', 'download'] = 'upload'
    s3Key: Optional[str] = None

    @field_validator('operation', mode='before')
    @classmethod
    def _default_operation(cls, v):
        return v.lower() if isinstance(v, str) and v else 'upload'


class NotificationEvent(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: str
    inspectionId: Optional[str] = None
    reportId: Optional[str] = None
    propertyAddress: Optional[str] = None
    inspectorEmail: Optional[str] = None
    clientEmail: Optional[str] = None
    generatedAt: Optional[str] = None

    @model_validator(mode='after')
    def _report_fields(self):
        if self.type == REPORT_GENERATED:
            missing = [f for f in ('inspectionId', 'propertyAddress', 'inspectorEmail', 'generatedAt') if not getattr(self, f)]
            if missing:
                raise ValueError(f"REPORT_GENERATED event missing: {', '.join(missing)}")
        return self


def _field_name(loc) -> str:
    return '.'.join(str(p) for p in loc) or 'body'


def parse_payload(model, payload):
    """Validate ``payload`` against ``model``.

    Raises errors.ValidationError with a readable message and per-field details.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    try:
        return model.model_validate(to_camel_case_keys(payload))
    except pydantic.ValidationError as e:
        errors = e.errors()
        details = [{'field': _field_name(err['loc']), 'message': err['msg']} for err in errors]
        missing = [d['field'] for d, err in zip(details, errors) if err['type'] in ('missing', 'string_too_short')]
        if missing and len(missing) == len(errors):
            message = 'Missing required fields: ' + ', '.join(missing)
        else:
            message = 'Invalid fields: ' + ', '.join(d['field'] for d in details)
        raise ValidationError(message, details=details) from e
