"""Create the DynamoDB table backing the attribute change log.

Run once before enabling ``stateLog``:
    python scripts/create_dynamodb_table.py --table webhookbridge-state-log
"""

import argparse
import os

import boto3
from botocore.exceptions import ClientError

from webhookbridge.logging.dynamo_logger import DEFAULT_REGION, DEFAULT_TABLE_NAME, TTL_DAYS


def create_table(table_name: str, region: str, profile: str | None = None) -> None:
    session_kwargs = {"region_name": region}
    if profile:
        session_kwargs["profile_name"] = profile
    client = boto3.Session(**session_kwargs).client("dynamodb")

    try:
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "device_id", "KeyType": "HASH"},
                {"AttributeName": "timestamp", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "device_id", "AttributeType": "S"},
                {"AttributeName": "timestamp", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] != "ResourceInUseException":
            raise
        print(f"Table '{table_name}' already exists.")
        return

    print(f"Creating '{table_name}' in {region}...")
    client.get_waiter("table_exists").wait(TableName=table_name)
    client.update_time_to_live(
        TableName=table_name,
        TimeToLiveSpecification={"Enabled": True, "AttributeName": "ttl"},
    )
    print(f"Table '{table_name}' is ready; entries expire after {TTL_DAYS} days.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the attribute change log table")
    parser.add_argument(
        "--table",
        default=os.environ.get("DYNAMODB_TABLE_NAME", DEFAULT_TABLE_NAME),
        help=f"Table name (default: $DYNAMODB_TABLE_NAME or {DEFAULT_TABLE_NAME})",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION),
        help="AWS region",
    )
    parser.add_argument("--profile", default=None, help="AWS profile to use")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    create_table(args.table, args.region, args.profile)
