import boto3
from botocore.config import Config

from . import config
from .images import ImageReferenceService
from .publisher import ReportEventPublisher
from .report import ReportGenerator
from .service import InspectionService
from .store import InspectionStore


def client_config(**overrides) -> Config:
    # Bounded calls, single attempt: retries belong to the invoking transport
    cfg = Config(
        region_name=config.REGION,
        connect_timeout=config.AWS_CONNECT_TIMEOUT,
        read_timeout=config.AWS_READ_TIMEOUT,
        retries={'total_max_attempts': 1, 'mode': 'standard'},
    )
    if overrides:
        cfg = cfg.merge(Config(**overrides))
    return cfg


def dynamodb_table(table_name=None):
    dynamodb = boto3.resource('dynamodb', config=client_config())
    return dynamodb.Table(table_name or config.TABLE_NAME)


def s3_client():
    return boto3.client('s3', config=client_config(signature_version='s3v4'))


def sns_client():
    return boto3.client('sns', config=client_config())


class Services:
    """Collaborators the HTTP handlers work with."""

    def __init__(self, inspections, reports, images):
        self.inspections = inspections
        self.reports = reports
        self.images = images


def build_services() -> Services:
    store = InspectionStore(dynamodb_table(), index_name=config.STATUS_INDEX_NAME)
    publisher = ReportEventPublisher(sns_client(), config.SNS_TOPIC_ARN)
    return Services(
        inspections=InspectionService(store),
        reports=ReportGenerator(store, publisher),
        images=ImageReferenceService(s3_client(), config.IMAGE_BUCKET_NAME),
    )
