import os

# Table / index names (single-table layout, see store.py)
TABLE_NAME = os.environ.get('TABLE_NAME', 'InspectionsTable')
STATUS_INDEX_NAME = os.environ.get('STATUS_INDEX_NAME', 'GSI1')

# Images bucket and presigned URL lifetimes (seconds)
IMAGE_BUCKET_NAME = os.environ.get('IMAGE_BUCKET_NAME', 'inspection-images-bucket')
UPLOAD_URL_EXPIRES = int(os.environ.get('UPLOAD_URL_EXPIRES', '300'))
DOWNLOAD_URL_EXPIRES = int(os.environ.get('DOWNLOAD_URL_EXPIRES', '3600'))
DEFAULT_CONTENT_TYPE = 'image/jpeg'

# Report events; publishing is skipped when unset
SNS_TOPIC_ARN = os.environ.get('SNS_TOPIC_ARN') or None

REGION = os.environ.get('AWS_REGION', 'ap-southeast-1')

# Every AWS call is bounded; no retries at this layer
AWS_CONNECT_TIMEOUT = float(os.environ.get('AWS_CONNECT_TIMEOUT', '3'))
AWS_READ_TIMEOUT = float(os.environ.get('AWS_READ_TIMEOUT', '10'))

# Verbose debug logging is off by default. Set ENABLE_DEBUG=true to print and return collected logs.
ENABLE_DEBUG = str(os.environ.get('ENABLE_DEBUG', '')).lower() in ('1', 'true', 'yes', 'on')

# Base URL of the deployed API (used by api_client only)
INSPECTION_API_URL = os.environ.get('INSPECTION_API_URL')
