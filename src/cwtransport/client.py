"""
CloudWatch Logs client boundary.

The delivery engine only talks to a ``LogsClient``: four async operations
whose failure modes are expressed with the transport error taxonomy.
``Boto3LogsClient`` is the production implementation; it runs the blocking
boto3 calls in worker threads and maps botocore ``ClientError`` codes onto
``ResourceAlreadyExistsError``, ``InvalidSequenceTokenError`` and
``DataAlreadyAcceptedError``. Anything else surfaces as
``TransientDeliveryError``.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .core.errors import (
    DataAlreadyAcceptedError,
    InvalidSequenceTokenError,
    ResourceAlreadyExistsError,
    TransientDeliveryError,
    TransportError,
)
from .core.events import LogEvent


@dataclass(frozen=True)
class LogStreamInfo:
    name: str
    upload_sequence_token: str | None = None


@dataclass(frozen=True)
class PutLogEventsResult:
    next_sequence_token: str | None = None
    rejected_info: dict[str, Any] | None = None


@runtime_checkable
class LogsClient(Protocol):
    """Async client for the subset of CloudWatch Logs the engine needs.

    Implementations must be safe for concurrent use from several
    destinations at once.
    """

    async def create_log_group(
        self, group_name: str, tags: Mapping[str, str] | None = None
    ) -> None: ...

    async def create_log_stream(self, group_name: str, stream_name: str) -> None: ...

    async def describe_log_streams(
        self, group_name: str, stream_name_prefix: str
    ) -> list[LogStreamInfo]: ...

    async def put_log_events(
        self,
        group_name: str,
        stream_name: str,
        events: Sequence[LogEvent],
        sequence_token: str | None = None,
    ) -> PutLogEventsResult: ...


_ALREADY_EXISTS = "ResourceAlreadyExistsException"
_INVALID_TOKEN = "InvalidSequenceTokenException"
_ALREADY_ACCEPTED = "DataAlreadyAcceptedException"


def _expected_token(response: Mapping[str, Any]) -> str | None:
    # botocore lifts modeled error members to the top level; some stubs and
    # older releases leave them under "Error"
    token = response.get("expectedSequenceToken")
    if token is None:
        token = response.get("Error", {}).get("expectedSequenceToken")
    return token


def translate_client_error(
    exc: ClientError,
    *,
    operation: str,
    group_name: str | None = None,
    stream_name: str | None = None,
) -> TransportError:
    """Map a botocore ``ClientError`` to the transport error taxonomy."""
    response: Mapping[str, Any] = exc.response or {}
    code = response.get("Error", {}).get("Code", "")
    detail = response.get("Error", {}).get("Message", str(exc))
    fields = {
        "group_name": group_name,
        "stream_name": stream_name,
        "operation": operation,
        "code": code,
    }
    if code == _ALREADY_EXISTS:
        return ResourceAlreadyExistsError(detail, cause=exc, **fields)
    if code == _INVALID_TOKEN:
        return InvalidSequenceTokenError(
            detail, expected_token=_expected_token(response), cause=exc, **fields
        )
    if code == _ALREADY_ACCEPTED:
        return DataAlreadyAcceptedError(
            detail, expected_token=_expected_token(response), cause=exc, **fields
        )
    return TransientDeliveryError(detail, cause=exc, **fields)


class Boto3LogsClient:
    """``LogsClient`` backed by a boto3 ``logs`` client.

    The boto3 client is created lazily on first use unless one is passed in.
    boto3 clients are thread safe, so one instance is shared by every
    destination.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        region: str | None = None,
        profile: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._client = client
        self._region = region
        self._profile = profile
        self._endpoint_url = endpoint_url
        self._client_lock = threading.Lock()

    def _get_client(self) -> Any:
        with self._client_lock:
            if self._client is None:
                session = boto3.session.Session(
                    profile_name=self._profile, region_name=self._region
                )
                self._client = session.client("logs", endpoint_url=self._endpoint_url)
            return self._client

    async def _call(
        self,
        operation: str,
        *,
        group_name: str,
        stream_name: str | None = None,
        **kwargs: Any,
    ) -> Any:
        client = await asyncio.to_thread(self._get_client)
        try:
            return await asyncio.to_thread(getattr(client, operation), **kwargs)
        except ClientError as e:
            raise translate_client_error(
                e,
                operation=operation,
                group_name=group_name,
                stream_name=stream_name,
            ) from e
        except BotoCoreError as e:
            raise TransientDeliveryError(
                str(e),
                cause=e,
                operation=operation,
                group_name=group_name,
                stream_name=stream_name,
            ) from e

    async def create_log_group(
        self, group_name: str, tags: Mapping[str, str] | None = None
    ) -> None:
        kwargs: dict[str, Any] = {"logGroupName": group_name}
        if tags:
            kwargs["tags"] = dict(tags)
        await self._call("create_log_group", group_name=group_name, **kwargs)

    async def create_log_stream(self, group_name: str, stream_name: str) -> None:
        await self._call(
            "create_log_stream",
            group_name=group_name,
            stream_name=stream_name,
            logGroupName=group_name,
            logStreamName=stream_name,
        )

    async def describe_log_streams(
        self, group_name: str, stream_name_prefix: str
    ) -> list[LogStreamInfo]:
        response = await self._call(
            "describe_log_streams",
            group_name=group_name,
            stream_name=stream_name_prefix,
            logGroupName=group_name,
            logStreamNamePrefix=stream_name_prefix,
        )
        return [
            LogStreamInfo(
                name=stream["logStreamName"],
                upload_sequence_token=stream.get("uploadSequenceToken"),
            )
            for stream in response.get("logStreams", [])
        ]

    async def put_log_events(
        self,
        group_name: str,
        stream_name: str,
        events: Sequence[LogEvent],
        sequence_token: str | None = None,
    ) -> PutLogEventsResult:
        # The service rejects batches that are not in chronological order
        ordered = sorted(events, key=lambda e: e.timestamp_millis)
        kwargs: dict[str, Any] = {
            "logGroupName": group_name,
            "logStreamName": stream_name,
            "logEvents": [e.to_wire() for e in ordered],
        }
        if sequence_token is not None:
            kwargs["sequenceToken"] = sequence_token
        response = await self._call(
            "put_log_events",
            group_name=group_name,
            stream_name=stream_name,
            **kwargs,
        )
        return PutLogEventsResult(
            next_sequence_token=response.get("nextSequenceToken"),
            rejected_info=response.get("rejectedLogEventsInfo"),
        )


__all__ = [
    "Boto3LogsClient",
    "LogStreamInfo",
    "LogsClient",
    "PutLogEventsResult",
    "translate_client_error",
]
