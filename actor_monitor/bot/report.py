from __future__ import annotations

import json

from actor_monitor.monitor.endpoint import ManagementRegistry, PerformanceBean

MAX_VISIBLE_CHARS = 1800


def format_rate(bean: PerformanceBean) -> str:
    snap = bean.snapshot()
    return (
        f"**Message rate**\n"
        f"{snap.messages_per_second:.12g} msg/s over {snap.buckets} s "
        f"({snap.events} messages) | Uptime: {snap.uptime_seconds}s"
    )


def render_registry(registry: ManagementRegistry) -> str:
    """JSON dump of every registered bean, fenced for a chat reply."""
    body = json.dumps(registry.dump(), indent=2, default=str)
    if len(body) > MAX_VISIBLE_CHARS:
        body = body[:MAX_VISIBLE_CHARS] + "\n..."
    return "```json\n" + body + "\n```"


__all__ = ["format_rate", "render_registry", "MAX_VISIBLE_CHARS"]
