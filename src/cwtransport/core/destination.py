"""
Destinations: one CloudWatch Logs (group, stream) pair each.

A destination knows how to provision itself (create the group and/or the
stream when asked to) and does so at most once per lifetime. Creation that
fails with "already exists" counts as success.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Mapping, NamedTuple

from .diagnostics import ComponentDiagnostics, DiagnosticsLogger
from .errors import ProvisionError, ResourceAlreadyExistsError

if TYPE_CHECKING:
    from ..client import LogsClient


class DestinationKey(NamedTuple):
    """Composite identity; tuples avoid separator aliasing between names."""

    group_name: str
    stream_name: str

    @property
    def label(self) -> str:
        return f"{self.group_name}/{self.stream_name}"


class Destination:
    def __init__(
        self,
        client: LogsClient,
        group_name: str,
        stream_name: str,
        *,
        provision_group: bool = False,
        provision_stream: bool = False,
        tags: Mapping[str, str] | None = None,
        diagnostics: DiagnosticsLogger | None = None,
    ) -> None:
        self._client = client
        self._key = DestinationKey(group_name, stream_name)
        self.provision_group = provision_group
        self.provision_stream = provision_stream
        self.tags = dict(tags) if tags else None
        self._provisioned = not (provision_group or provision_stream)
        self._lock = asyncio.Lock()
        self._diag = diagnostics or ComponentDiagnostics(
            "destination", destination=self._key.label
        )

    @property
    def group_name(self) -> str:
        return self._key.group_name

    @property
    def stream_name(self) -> str:
        return self._key.stream_name

    @property
    def label(self) -> str:
        return self._key.label

    @property
    def provisioned(self) -> bool:
        return self._provisioned

    def key(self) -> DestinationKey:
        return self._key

    async def ensure_provisioned(self) -> None:
        """Create the group and stream if configured to; idempotent.

        Raises ``ProvisionError`` when a create call fails for any reason
        other than the resource already existing. The provisioned flag is
        only set once both steps succeed, so a later call retries.
        """
        if self._provisioned:
            return
        async with self._lock:
            if self._provisioned:
                return
            if self.provision_group:
                await self._create("group")
            if self.provision_stream:
                await self._create("stream")
            self._provisioned = True
            self._diag.debug("destination provisioned")

    async def _create(self, what: str) -> None:
        try:
            if what == "group":
                await self._client.create_log_group(self.group_name, self.tags)
            else:
                await self._client.create_log_stream(
                    self.group_name, self.stream_name
                )
        except ResourceAlreadyExistsError:
            self._diag.debug(f"log {what} already exists")
        except Exception as exc:
            raise ProvisionError(
                f"failed to create log {what}",
                cause=exc,
                group_name=self.group_name,
                stream_name=self.stream_name,
            ) from exc

    def __repr__(self) -> str:
        return (
            f"Destination(group_name={self.group_name!r}, "
            f"stream_name={self.stream_name!r}, provisioned={self._provisioned})"
        )
