# SPDX-License-Identifier: Apache-2.0
import json

import boto3
from botocore.exceptions import ClientError


class SecretLoader:
    """
    Base class for loading source credentials from a secret manager.

    Subclasses implement load_secret() for their platform. The returned
    dictionary is merged into the spreadsheet source configuration, so a
    secret typically carries keys such as "access_token" or "api_key".
    """

    def __init__(self, secret_config):
        """
        Args:
            secret_config (dict): Provider-specific settings for secret retrieval.
        """
        self.secret_config = secret_config

    def load_secret(self):
        """
        Load and return the secret value.

        Returns:
            dict: The secret, parsed from its JSON representation.

        Raises:
            NotImplementedError: If the method is not implemented by a subclass.
        """
        raise NotImplementedError("Subclasses must implement load_secret()")


class AwsSecretLoader(SecretLoader):
    """
    AWS Secrets Manager implementation for loading secrets.

    Uses default AWS credentials from environment variables, IAM roles, or the
    AWS credentials file. The region defaults to 'us-east-1' and can be set with
    "region_name" in the secret config.
    """

    def __init__(self, secret_config):
        """
        Args:
            secret_config (dict): Configuration dictionary containing:
                - secret_name (str): Name of the secret in AWS Secrets Manager
                - region_name (str, optional): AWS region
        """
        super().__init__(secret_config)
        self.region_name = secret_config.get("region_name", "us-east-1")
        session = boto3.session.Session()
        self.client = session.client(
            service_name='secretsmanager',
            region_name=self.region_name
        )

    def load_secret(self):
        """
        Retrieve and parse the secret from AWS Secrets Manager.

        Returns:
            dict: The parsed secret value.

        Raises:
            ClientError: If there's an error accessing the secret from AWS
            KeyError: If 'secret_name' is not provided in secret_config
        """
        secret_name = self.secret_config["secret_name"]

        try:
            get_secret_value_response = self.client.get_secret_value(
                SecretId=secret_name
            )
        except ClientError as e:
            raise e

        secret = get_secret_value_response['SecretString']
        return json.loads(secret)


# Mapping of service names to their corresponding loader classes
_SERVICE_MAP = {
    "aws": AwsSecretLoader,
}


def get_loader(config) -> SecretLoader:
    """
    Factory function to create the appropriate secret loader based on configuration.

    Args:
        config (dict): Configuration dictionary containing:
            - service (str): The secret manager provider ('aws')
            - Additional provider-specific configuration parameters

    Returns:
        SecretLoader: An instance of the appropriate SecretLoader subclass.

    Raises:
        Exception: If an unknown or unsupported service is specified in the config.

    Example:
        >>> config = {"service": "aws", "secret_name": "dashboard/sheets-token"}
        >>> loader = get_loader(config)
        >>> secret = loader.load_secret()
    """
    if config["service"] not in _SERVICE_MAP:
        raise Exception(f"Unknown service provided {config['service']}")

    return _SERVICE_MAP[config["service"]](config)
