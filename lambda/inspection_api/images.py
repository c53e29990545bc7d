from botocore.exceptions import BotoCoreError, ClientError

from . import config
from .errors import ValidationError, from_aws_error
from .id_utils import generate_image_key, image_id_from_key, image_key_prefix, new_image_id, validate_id


def _check_inspection_id(inspection_id):
    if not inspection_id:
        raise ValidationError('Missing required fields: inspectionId')
    # the id becomes part of the object key
    ok, msg = validate_id(inspection_id)
    if not ok:
        raise ValidationError('invalid inspectionId', details=msg)


class ImageReferenceService:
    """Issues presigned S3 grants for inspection images.

    Bytes go straight from the browser to S3; this service only names keys
    and signs URLs. Attaching the returned reference to an inspection is done
    through the regular inspection update.
    """

    def __init__(self, s3_client, bucket_name=config.IMAGE_BUCKET_NAME,
                 upload_expires=config.UPLOAD_URL_EXPIRES, download_expires=config.DOWNLOAD_URL_EXPIRES):
        self.s3 = s3_client
        self.bucket_name = bucket_name
        self.upload_expires = upload_expires
        self.download_expires = download_expires

    def issue_upload_grant(self, inspection_id, file_name, content_type=None) -> dict:
        _check_inspection_id(inspection_id)
        if not file_name:
            raise ValidationError('Missing required fields: fileName')
        content_type = content_type or config.DEFAULT_CONTENT_TYPE

        image_id = new_image_id()
        key = generate_image_key(inspection_id, image_id, file_name)
        url = self._presign('put_object', {'Bucket': self.bucket_name, 'Key': key, 'ContentType': content_type}, self.upload_expires)
        return {
            'uploadUrl': url,
            's3Key': key,
            'imageId': image_id,
            'contentType': content_type,
            'expiresIn': self.upload_expires,
        }

    def issue_download_grant(self, inspection_id, s3_key=None, file_name=None) -> dict:
        """Sign a GET for ``s3_key``.

        Without a key, one is derived from ``file_name`` under a fresh image id.
        The key must belong to ``inspection_id``.
        """
        _check_inspection_id(inspection_id)
        if not s3_key:
            if not file_name:
                raise ValidationError('Missing required fields: s3Key or fileName')
            s3_key = generate_image_key(inspection_id, new_image_id(), file_name)
        if not s3_key.startswith(image_key_prefix(inspection_id)):
            raise ValidationError('s3Key does not belong to this inspection', details=s3_key)

        url = self._presign('get_object', {'Bucket': self.bucket_name, 'Key': s3_key}, self.download_expires)
        return {
            'downloadUrl': url,
            's3Key': s3_key,
            'imageId': image_id_from_key(s3_key),
            'expiresIn': self.download_expires,
        }

    def _presign(self, client_method, params, expires_in):
        try:
            return self.s3.generate_presigned_url(ClientMethod=client_method, Params=params, ExpiresIn=expires_in)
        except (ClientError, BotoCoreError) as e:
            raise from_aws_error(e, 'presign ' + client_method) from e
