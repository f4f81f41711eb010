"""
Developer overlay for the preload cache.

Renders the cache status as a few lines of text. Production builds pass
enabled=False and get nothing back.
"""

from typing import Optional

from .models import CacheStatus


def render_cache_status(
    status: CacheStatus,
    all_loading: bool = False,
    enabled: bool = False,
) -> Optional[str]:
    if not enabled:
        return None

    lines = ["Preload Status"]
    for name, count in status.counts.items():
        state = "(loading...)" if status.loading.get(name) else "ok"
        lines.append(f"{name.label}: {count} items {state}")

    if all_loading:
        lines.append("Preloading all data...")

    if status.has_errors:
        failures = ", ".join(
            f"{name.value}: {error}"
            for name, error in status.errors.items()
            if error
        )
        lines.append(f"Errors: {failures}")

    return "\n".join(lines)
