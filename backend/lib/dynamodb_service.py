"""
=============================================================================
DYNAMODB SERVICE - Daily usage logs in Amazon DynamoDB
=============================================================================

Table Schema:
-------------
Table: ElecaDailyUsage (DYNAMODB_TABLE_NAME)
- user_id (String)  - Partition Key - groups all logs of one household
- date (String)     - Sort Key      - YYYY-MM-DD, one item per day
- total_units (Number)
- total_cost (Number)
- is_estimated (Boolean)
- appliances_json (String) - per-appliance entries as JSON
- created_at (String)       - when the item was written

Because (user_id, date) is the primary key, saving a day again replaces
the previous item for that day.
=============================================================================
"""

import json
import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List

# boto3 - AWS SDK for Python
import boto3
from boto3.dynamodb.conditions import Key

# ClientError - Exception class for AWS API errors
from botocore.exceptions import ClientError

from backend.lib.eleca_core.io import daily_usage_from_dict, to_jsonable
from backend.lib.eleca_core.models import UserDailyUsage
from backend.lib.logger import get_logger

logger = get_logger(__name__)


class DynamoDBService:
    """
    Stores and loads UserDailyUsage records.

    Usage:
        db = DynamoDBService()
        db.create_table_if_not_exists()
        db.save_logs([log])
        logs = db.get_logs_for_user("u1")
    """

    def __init__(self, table_name: str = None, resource=None, client=None):
        """
        Args:
            table_name: Optional custom table name. Defaults to DYNAMODB_TABLE_NAME
                        from the environment, then 'ElecaDailyUsage'.
            resource / client: Pre-built boto3 objects (tests pass stand-ins).
        """
        self.table_name = table_name or os.getenv('DYNAMODB_TABLE_NAME', 'ElecaDailyUsage')
        self.region = os.getenv('AWS_REGION', 'ap-south-1')
        session_token = os.getenv('AWS_SESSION_TOKEN')
        credentials = dict(
            region_name=self.region,
            aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            aws_session_token=session_token if session_token else None,
        )

        # Resource: Table objects (put/query); client: describe_table
        self.dynamodb = resource or boto3.resource('dynamodb', **credentials)
        self.client = client or boto3.client('dynamodb', **credentials)
        self.table = None

    def _table(self):
        if not self.table:
            self.table = self.dynamodb.Table(self.table_name)
        return self.table

    def create_table_if_not_exists(self) -> bool:
        """Create the table on first use. Returns True when it exists afterwards."""
        try:
            self.client.describe_table(TableName=self.table_name)
            self.table = self.dynamodb.Table(self.table_name)
            logger.info("DynamoDB table '%s' exists", self.table_name)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                logger.error("Error checking table: %s", e)
                return False

        try:
            table = self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {'AttributeName': 'user_id', 'KeyType': 'HASH'},
                    {'AttributeName': 'date', 'KeyType': 'RANGE'},
                ],
                AttributeDefinitions=[
                    {'AttributeName': 'user_id', 'AttributeType': 'S'},
                    {'AttributeName': 'date', 'AttributeType': 'S'},
                ],
                # On-demand pricing, no capacity planning needed
                BillingMode='PAY_PER_REQUEST'
            )
            table.wait_until_exists()
            self.table = table
            logger.info("Created DynamoDB table '%s'", self.table_name)
            return True
        except ClientError as e:
            logger.error("Failed to create table: %s", e)
            return False

    @staticmethod
    def _to_item(log: UserDailyUsage) -> Dict:
        # DynamoDB needs Decimal, not float; go through str to keep precision
        return {
            'user_id': log.user_id,
            'date': log.date.isoformat(),
            'id': log.id,
            'total_units': Decimal(str(log.total_units)),
            'total_cost': Decimal(str(log.total_cost)),
            'is_estimated': log.is_estimated,
            'appliances_json': json.dumps(to_jsonable(log.appliances)),
            'created_at': datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def _from_item(item: Dict) -> UserDailyUsage:
        return daily_usage_from_dict({
            'id': item.get('id'),
            'user_id': item['user_id'],
            'date': item['date'],
            'total_units': float(item['total_units']),
            'total_cost': float(item['total_cost']),
            'is_estimated': bool(item.get('is_estimated', False)),
            'appliances': json.loads(item.get('appliances_json') or '[]'),
        })

    def save_logs(self, logs: Iterable[UserDailyUsage]) -> int:
        """
        Write logs with a batch writer (it sends up to 25 items per request).
        Returns the number of items written, 0 on failure.
        """
        items = [self._to_item(log) for log in logs]
        try:
            with self._table().batch_writer(overwrite_by_pkeys=['user_id', 'date']) as writer:
                for item in items:
                    writer.put_item(Item=item)
            return len(items)
        except ClientError as e:
            logger.error("Batch write error: %s", e)
            return 0

    def get_logs_for_user(self, user_id: str) -> List[UserDailyUsage]:
        """All logs of a user sorted by date (the sort key), following pagination."""
        table = self._table()
        try:
            response = table.query(KeyConditionExpression=Key('user_id').eq(user_id))
            items = response.get('Items', [])

            # DynamoDB returns max 1MB per query
            while 'LastEvaluatedKey' in response:
                response = table.query(
                    KeyConditionExpression=Key('user_id').eq(user_id),
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error("Failed to get logs: %s", e)
            return []

        return [self._from_item(item) for item in items]

