"""
AWS Secrets Manager access for database credentials.
"""
import json
import boto3
import logging

logger = logging.getLogger(__name__)


class SecretReader:
    """Reads JSON secrets through a Secrets Manager client."""

    def __init__(self, secretsmanager_client):
        self.client = secretsmanager_client

    def read(self, secret_name: str) -> dict:
        """
        Fetch a secret and decode its JSON payload.

        Raises:
            ClientError: secret missing or not readable
            ValueError: secret is not a JSON object
        """
        try:
            response = self.client.get_secret_value(SecretId=secret_name)
        except self.client.exceptions.ResourceNotFoundException:
            logger.error(f"The requested secret {secret_name} was not found.")
            raise
        payload = json.loads(response["SecretString"])
        if not isinstance(payload, dict):
            raise ValueError(f"Secret {secret_name} is not a JSON object.")
        logger.info(f"Secret {secret_name} retrieved.")
        return payload


def get_secret(secret_name: str, region_name: str = "us-east-1") -> dict:
    """Get a secret from AWS Secrets Manager as a dict."""
    session = boto3.session.Session()
    client = session.client(service_name="secretsmanager", region_name=region_name)
    return SecretReader(client).read(secret_name)
