"""Thin HTTP client for the inspection API.

Mirrors what the web UI does: create/list/get/update inspections, generate
reports, and upload images straight to S3 through presigned URLs.

Usage:
    client = InspectionApiClient('https://abc123.execute-api.ap-southeast-1.amazonaws.com/prod')
    created = client.create_inspection({'propertyAddress': '1 Main St', 'inspectorName': 'Sam',
                                        'inspectorEmail': 'sam@example.com'})
    iid = created['inspection']['inspectionId']
    ref = client.upload_image(iid, 'roof.jpg', open('roof.jpg', 'rb').read(), 'image/jpeg')
    client.update_inspection(iid, {'images': [ref]})
"""
from datetime import datetime, timezone
from typing import Optional

import requests

from . import config

DEFAULT_TIMEOUT = 15


class ApiError(Exception):
    def __init__(self, status_code, message, body=None):
        super().__init__(f'{status_code}: {message}')
        self.status_code = status_code
        self.message = message
        self.body = body


class InspectionApiClient:

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        base_url = base_url or config.INSPECTION_API_URL
        if not base_url:
            raise ValueError('base_url is required (or set INSPECTION_API_URL)')
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def request(self, method: str, endpoint: str, json=None, params=None) -> dict:
        url = f'{self.base_url}{endpoint}'
        response = self.session.request(
            method,
            url,
            json=json,
            params=params,
            headers={'Content-Type': 'application/json'},
            timeout=self.timeout,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.ok:
            message = data.get('error') if isinstance(data, dict) else None
            raise ApiError(response.status_code, message or 'API request failed', data)
        return data

    def create_inspection(self, inspection_data: dict) -> dict:
        return self.request('POST', '/inspections', json=inspection_data)

    def get_inspection(self, inspection_id: str) -> dict:
        return self.request('GET', f'/inspections/{inspection_id}')

    def list_inspections(self, status: Optional[str] = None) -> dict:
        params = {'status': status} if status else None
        return self.request('GET', '/inspections', params=params)

    def update_inspection(self, inspection_id: str, updates: dict) -> dict:
        return self.request('PUT', f'/inspections/{inspection_id}', json=updates)

    def generate_report(self, inspection_id: str) -> dict:
        return self.request('POST', f'/inspections/{inspection_id}/report')

    def get_presigned_url(self, inspection_id: str, file_name: str, content_type: str = config.DEFAULT_CONTENT_TYPE,
                          operation: str = 'upload', s3_key: Optional[str] = None) -> dict:
        payload = {
            'inspectionId': inspection_id,
            'fileName': file_name,
            'contentType': content_type,
            'operation': operation,
        }
        if s3_key:
            payload['s3Key'] = s3_key
        return self.request('POST', '/presigned-url', json=payload)

    def upload_image(self, inspection_id: str, file_name: str, data: bytes,
                     content_type: str = config.DEFAULT_CONTENT_TYPE) -> dict:
        """Upload bytes to S3 and return the image reference to attach via update_inspection."""
        grant = self.get_presigned_url(inspection_id, file_name, content_type)
        response = self.session.put(
            grant['uploadUrl'],
            data=data,
            headers={'Content-Type': content_type},
            timeout=self.timeout,
        )
        if not response.ok:
            raise ApiError(response.status_code, 'Failed to upload image to S3')
        return {
            'imageId': grant['imageId'],
            's3Key': grant['s3Key'],
            'description': file_name,
            'uploadedAt': datetime.now(timezone.utc).isoformat(),
        }

    def upload_images(self, inspection_id: str, files) -> list:
        """Upload (file_name, data, content_type) tuples in order."""
        return [self.upload_image(inspection_id, name, data, content_type) for name, data, content_type in files]
