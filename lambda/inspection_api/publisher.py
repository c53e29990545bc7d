import json

from botocore.exceptions import BotoCoreError, ClientError

from .errors import from_aws_error

SUBJECT = 'Inspection Report Generated'


class ReportEventPublisher:
    """Publishes report events to the notifications SNS topic."""

    def __init__(self, sns_client, topic_arn=None):
        self.sns = sns_client
        self.topic_arn = topic_arn

    @property
    def enabled(self) -> bool:
        return bool(self.topic_arn)

    def publish(self, event: dict):
        """Publish ``event`` and return the SNS MessageId (None when disabled)."""
        if not self.enabled:
            return None
        try:
            resp = self.sns.publish(
                TopicArn=self.topic_arn,
                Subject=SUBJECT,
                Message=json.dumps(event),
                MessageAttributes={
                    'eventType': {'DataType': 'String', 'StringValue': event['type']}
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise from_aws_error(e, 'sns publish') from e
        return resp.get('MessageId')
