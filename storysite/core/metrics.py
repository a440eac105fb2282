"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_rate_limit_block_total: Dict[str, int] = defaultdict(int)
_media_uploaded_total: Dict[str, int] = defaultdict(int)
_quota_blocked_total: Dict[str, int] = defaultdict(int)
_media_linked_total: int = 0
_remote_delete_total: Dict[str, int] = defaultdict(int)
_identifier_conflict_total: Dict[str, int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_rate_limit_block(*, kind: str) -> None:
    with _lock:
        _rate_limit_block_total[_normalize_label(kind)] += 1


def record_media_uploaded(*, media_type: str) -> None:
    with _lock:
        _media_uploaded_total[_normalize_label(media_type)] += 1


def record_quota_blocked(*, tier: str) -> None:
    with _lock:
        _quota_blocked_total[_normalize_label(tier)] += 1


def record_media_linked(*, count: int) -> None:
    global _media_linked_total
    if count <= 0:
        return
    with _lock:
        _media_linked_total += int(count)


def record_remote_delete(*, outcome: str) -> None:
    with _lock:
        _remote_delete_total[_normalize_label(outcome)] += 1


def record_identifier_conflict(*, scope: str) -> None:
    with _lock:
        _identifier_conflict_total[_normalize_label(scope)] += 1


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        rate_limit_total = dict(_rate_limit_block_total)
        uploaded_total = dict(_media_uploaded_total)
        quota_total = dict(_quota_blocked_total)
        linked_total = _media_linked_total
        remote_delete_total = dict(_remote_delete_total)
        conflict_total = dict(_identifier_conflict_total)

    lines = [
        "# HELP storysite_app_info Static application metadata.",
        "# TYPE storysite_app_info gauge",
        (
            f'storysite_app_info{{app="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP storysite_uptime_seconds Process uptime in seconds.",
        "# TYPE storysite_uptime_seconds gauge",
        f"storysite_uptime_seconds {uptime:.3f}",
        "# HELP storysite_http_requests_total Total HTTP requests.",
        "# TYPE storysite_http_requests_total counter",
    ]
    for (method, path, status), count in sorted(http_total.items()):
        lines.append(
            f'storysite_http_requests_total{{method="{_escape_label(method)}",'
            f'path="{_escape_label(path)}",status="{status}"}} {count}'
        )

    lines.extend(
        [
            "# HELP storysite_http_request_duration_seconds HTTP request duration.",
            "# TYPE storysite_http_request_duration_seconds summary",
        ]
    )
    for (method, path), total in sorted(duration_sum.items()):
        labels = f'method="{_escape_label(method)}",path="{_escape_label(path)}"'
        lines.append(f"storysite_http_request_duration_seconds_sum{{{labels}}} {total:.6f}")
        lines.append(
            f"storysite_http_request_duration_seconds_count{{{labels}}} {duration_count.get((method, path), 0)}"
        )

    lines.extend(
        [
            "# HELP storysite_rate_limit_block_total Requests blocked by rate limiting.",
            "# TYPE storysite_rate_limit_block_total counter",
        ]
    )
    for kind, count in sorted(rate_limit_total.items()):
        lines.append(f'storysite_rate_limit_block_total{{kind="{_escape_label(kind)}"}} {count}')

    lines.extend(
        [
            "# HELP storysite_media_uploaded_total Media records created by upload.",
            "# TYPE storysite_media_uploaded_total counter",
        ]
    )
    for media_type, count in sorted(uploaded_total.items()):
        lines.append(f'storysite_media_uploaded_total{{type="{_escape_label(media_type)}"}} {count}')

    lines.extend(
        [
            "# HELP storysite_quota_blocked_total Uploads rejected by the tier content limit.",
            "# TYPE storysite_quota_blocked_total counter",
        ]
    )
    for tier, count in sorted(quota_total.items()):
        lines.append(f'storysite_quota_blocked_total{{tier="{_escape_label(tier)}"}} {count}')

    lines.extend(
        [
            "# HELP storysite_media_linked_total Media references created.",
            "# TYPE storysite_media_linked_total counter",
            f"storysite_media_linked_total {linked_total}",
            "# HELP storysite_remote_delete_total Remote asset deletions by outcome.",
            "# TYPE storysite_remote_delete_total counter",
        ]
    )
    for outcome, count in sorted(remote_delete_total.items()):
        lines.append(f'storysite_remote_delete_total{{outcome="{_escape_label(outcome)}"}} {count}')

    lines.extend(
        [
            "# HELP storysite_identifier_conflict_total Identifier allocations retried after a unique violation.",
            "# TYPE storysite_identifier_conflict_total counter",
        ]
    )
    for scope, count in sorted(conflict_total.items()):
        lines.append(f'storysite_identifier_conflict_total{{scope="{_escape_label(scope)}"}} {count}')

    return "\n".join(lines) + "\n"


def reset_metrics_for_tests() -> None:
    global _started_at, _media_linked_total
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _rate_limit_block_total.clear()
        _media_uploaded_total.clear()
        _quota_blocked_total.clear()
        _media_linked_total = 0
        _remote_delete_total.clear()
        _identifier_conflict_total.clear()
    _started_at = time.time()
