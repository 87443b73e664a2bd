"""
infra/cloud_clients.py

Lazily-built SDK clients for the query sources (DI-friendly).

Goals:
- Sources never construct SDK clients themselves; they receive them.
- Clients are created only when a source actually needs them, so a local
  folder run never touches Google or AWS credentials.
- Tests pass fakes through the constructor instead of patching SDK modules.
"""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from google.api_core.client_info import ClientInfo
from google.cloud import bigquery, storage

from contracts.interfaces import BigQueryClientProtocol, GCSClientProtocol, S3ClientProtocol
from infra.config import Settings, get_settings
from version import ENGINE_NAME, ENGINE_VERSION

_USER_AGENT = f"{ENGINE_NAME}/{ENGINE_VERSION}"


def s3_sdk_config(settings: Settings) -> Config:
    """botocore client tuning for the S3 backend."""
    aws = settings.aws
    return Config(
        retries={"max_attempts": int(aws.max_retries), "mode": "standard"},
        user_agent_extra=_USER_AGENT,
        connect_timeout=int(aws.connect_timeout),
        read_timeout=int(aws.timeout),
    )


class CloudClients:
    """
    Creates and caches the SDK clients used by query sources.

    Usage:
      clients = CloudClients(project="my-project")
      clients.storage()   # google.cloud.storage.Client, cached
      clients.bigquery()  # google.cloud.bigquery.Client, cached
      clients.s3()        # boto3 S3 client, cached

    Any client may be injected up front (tests, notebooks with their own auth).
    """

    def __init__(
        self,
        *,
        project: str | None = None,
        settings: Settings | None = None,
        storage_client: Any = None,
        bigquery_client: Any = None,
        s3_client: Any = None,
        session: boto3.Session | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._project = project or self._settings.gcp.project
        self._storage = storage_client
        self._bigquery = bigquery_client
        self._s3 = s3_client
        self._session = session

    @property
    def project(self) -> str | None:
        return self._project

    def storage(self) -> GCSClientProtocol:
        """Google Cloud Storage client (project may be None: bucket listing does not need it)."""
        if self._storage is None:
            self._storage = storage.Client(
                project=self._project,
                client_info=ClientInfo(user_agent=_USER_AGENT),
            )
        return self._storage

    def bigquery(self) -> BigQueryClientProtocol:
        """BigQuery client billed to the processing project."""
        if self._bigquery is None:
            self._bigquery = bigquery.Client(
                project=self._project,
                location=self._settings.gcp.bigquery_location,
                client_info=ClientInfo(user_agent=_USER_AGENT),
            )
        return self._bigquery

    def s3(self) -> S3ClientProtocol:
        if self._s3 is None:
            session = self._session or boto3.Session()
            self._s3 = session.client(
                "s3",
                region_name=self._settings.aws.default_region,
                config=s3_sdk_config(self._settings),
            )
        return self._s3


__all__ = ["CloudClients", "s3_sdk_config"]
