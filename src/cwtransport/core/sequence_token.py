"""Per-destination sequence token cache."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .diagnostics import ComponentDiagnostics, DiagnosticsLogger
from .errors import TokenLookupFailure

if TYPE_CHECKING:
    from ..client import LogsClient
    from .destination import Destination

# Distinguishes "never looked up" from "looked up, stream has no token"
_UNSET = object()


class SequenceTokenManager:
    """Tracks the ordering token for one destination.

    The first ``get()`` describes the stream and caches its upload token (or
    its absence, for new empty streams). Afterwards the cache is only
    changed by ``set()`` after each put, or dropped by ``invalidate()`` when
    an ordering conflict arrives without an expected token.
    """

    def __init__(
        self,
        client: LogsClient,
        destination: Destination,
        *,
        diagnostics: DiagnosticsLogger | None = None,
    ) -> None:
        self._client = client
        self._destination = destination
        self._token: object = _UNSET
        self._diag = diagnostics or ComponentDiagnostics(
            "sequence-token", destination=destination.label
        )

    @property
    def cached(self) -> str | None:
        return None if self._token is _UNSET else self._token  # type: ignore[return-value]

    @property
    def is_known(self) -> bool:
        return self._token is not _UNSET

    async def get(self) -> str | None:
        if self._token is _UNSET:
            self._token = await self._lookup()
        return self._token  # type: ignore[return-value]

    def set(self, token: str | None) -> None:
        self._token = token

    def invalidate(self) -> None:
        self._token = _UNSET

    async def _lookup(self) -> str | None:
        group = self._destination.group_name
        stream = self._destination.stream_name
        try:
            streams = await self._client.describe_log_streams(group, stream)
        except Exception as exc:
            raise TokenLookupFailure(
                "failed to describe log stream",
                cause=exc,
                group_name=group,
                stream_name=stream,
            ) from exc
        # The call filters by prefix; only the exact name counts
        for info in streams:
            if info.name == stream and info.upload_sequence_token:
                return info.upload_sequence_token
        self._diag.debug(
            "no sequence token for stream; sending without one",
            _rate_limit_key=f"no-token:{group}:{stream}",
        )
        return None
