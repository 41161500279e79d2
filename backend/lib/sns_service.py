"""
=============================================================================
SNS SERVICE - Subsidy limit alerts through Amazon SNS
=============================================================================

Flow:
-----
[Month summary: slab_crossed] --> [SNS Topic] --> [Email subscribers]

Email subscribers must confirm the subscription from the mail AWS sends
before they receive alerts.
=============================================================================
"""

import os
from typing import Dict, List, Optional

# boto3 - AWS SDK for Python
import boto3

# ClientError - Exception class for AWS API errors
from botocore.exceptions import ClientError

from backend.lib.eleca_core.io import round_currency
from backend.lib.eleca_core.models import MonthlyUsageSummary
from backend.lib.logger import get_logger

logger = get_logger(__name__)


class SNSService:
    """
    Usage:
        sns = SNSService()
        sns.create_topic_if_not_exists()
        sns.subscribe_email("user@example.com")
        sns.send_subsidy_limit_alert("u1", summary)
    """

    def __init__(self, topic_arn: str = None, client=None):
        """
        Environment Variables Used:
        - SNS_TOPIC_ARN: ARN of an existing topic
        - SNS_TOPIC_NAME: Name used when creating the topic
        - AWS_REGION and AWS credentials
        """
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
        self.topic_name = os.getenv('SNS_TOPIC_NAME', 'ElecaAlerts')
        self.region = os.getenv('AWS_REGION', 'ap-south-1')
        session_token = os.getenv('AWS_SESSION_TOKEN')

        self.sns_client = client or boto3.client(
            'sns',
            region_name=self.region,
            aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            aws_session_token=session_token if session_token else None
        )

    def create_topic_if_not_exists(self) -> Optional[str]:
        """create_topic is idempotent: an existing topic's ARN comes back unchanged."""
        try:
            response = self.sns_client.create_topic(Name=self.topic_name)
            self.topic_arn = response['TopicArn']
            logger.info("SNS topic ready: %s", self.topic_arn)
            return self.topic_arn
        except ClientError as e:
            logger.error("Failed to create SNS topic: %s", e)
            return None

    def subscribe_email(self, email: str) -> Optional[str]:
        if not self.topic_arn:
            logger.warning("No topic ARN configured")
            return None
        try:
            response = self.sns_client.subscribe(
                TopicArn=self.topic_arn,
                Protocol='email',
                Endpoint=email
            )
            return response['SubscriptionArn']
        except ClientError as e:
            logger.error("Failed to subscribe email: %s", e)
            return None

    def list_subscriptions(self) -> List[Dict]:
        if not self.topic_arn:
            return []
        try:
            response = self.sns_client.list_subscriptions_by_topic(TopicArn=self.topic_arn)
            return response.get('Subscriptions', [])
        except ClientError as e:
            logger.error("Failed to list subscriptions: %s", e)
            return []

    def send_alert(self, subject: str, message: str) -> bool:
        """Publish to the topic. Subject is cut to SNS's 100 character limit."""
        if not self.topic_arn:
            logger.warning("No topic ARN configured")
            return False
        try:
            self.sns_client.publish(
                TopicArn=self.topic_arn,
                Subject=subject[:100],
                Message=message
            )
            return True
        except ClientError as e:
            logger.error("Failed to send alert: %s", e)
            return False

    def send_subsidy_limit_alert(self, user_id: str, summary: MonthlyUsageSummary) -> bool:
        """Tell subscribers a household has used more units than its subsidy covers."""
        subject = f"Subsidy limit crossed - {summary.month}"
        message = f"""
Subsidy Limit Alert

Household: {user_id}
Month: {summary.month}

Units used so far: {summary.total_units:.2f} kWh
Subsidy limit: {summary.subsidy_limit:.2f} kWh
Projected month-end units: {summary.projected_units:.2f} kWh
Projected bill: Rs. {round_currency(summary.projected_bill_total):.2f}

Units beyond the limit are billed at slab rates from here on.
        """.strip()
        return self.send_alert(subject, message)
