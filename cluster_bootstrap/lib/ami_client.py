"""EC2 client for resolving Red Hat CoreOS machine images."""

import boto3
from botocore.exceptions import ClientError

from .logging_config import LOGGER

RHCOS_OWNER_ID = "531415883065"
RHCOS_NAME_PATTERN = "rhcos*"
SUPPORTED_CHANNELS = ("tested",)


class AMIClient:
    """EC2 client for looking up RHCOS AMIs."""

    def __init__(self, region: str = "us-east-1") -> None:
        """Initialize EC2 client.

        Args:
            region: AWS region to look up images in
        """
        self.region = region
        self.client = boto3.client("ec2", region_name=region)

    def lookup_ami(self, channel: str) -> str:
        """Return the newest available RHCOS AMI ID for channel.

        Args:
            channel: Release channel (only 'tested' is supported)

        Returns:
            AMI ID, e.g. 'ami-06d864b4154214132'

        Raises:
            ValueError: If the channel is unsupported or no image is published
                in the region
            ClientError: If the EC2 request fails
        """
        if channel not in SUPPORTED_CHANNELS:
            raise ValueError(f"channel {channel!r} is not yet supported")

        try:
            response = self.client.describe_images(
                Owners=[RHCOS_OWNER_ID],
                Filters=[
                    {"Name": "name", "Values": [RHCOS_NAME_PATTERN]},
                    {"Name": "state", "Values": ["available"]},
                ],
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            LOGGER.error("DescribeImages failed in %s: %s", self.region, error_code)
            raise

        images = response.get("Images", [])
        if not images:
            raise ValueError(f"no RHCOS image found for channel {channel!r} in {self.region}")

        newest = max(images, key=lambda image: image["CreationDate"])
        LOGGER.info("Resolved RHCOS AMI %s (%s)", newest["ImageId"], newest.get("Name", ""))
        return newest["ImageId"]
