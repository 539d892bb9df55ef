from __future__ import annotations

from hypothesis import strategies as st

from cwtransport.core.events import LogEvent

_TIMESTAMP_MAX_MS = 4_102_444_800_000  # 2100-01-01 UTC

message_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    max_size=200,
)

log_events = st.builds(
    LogEvent,
    timestamp_millis=st.integers(min_value=0, max_value=_TIMESTAMP_MAX_MS),
    message=message_text,
)
