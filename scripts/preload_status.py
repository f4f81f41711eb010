#!/usr/bin/env python3
"""
Run one full preload against the configured backend and print the result.

Handy for checking Snowflake credentials and data shape without starting
the API or the app.

Usage:
    python scripts/preload_status.py            # uses .env settings
    python scripts/preload_status.py --mock     # in-memory sample data

Exits 1 if any resource failed to load.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from picklepro.api.dependencies import build_data_source  # noqa: E402
from picklepro.config.settings import get_settings  # noqa: E402
from picklepro.core.preload.debug import render_cache_status  # noqa: E402
from picklepro.core.preload.service import PreloadingService  # noqa: E402


async def run(mock: bool, user_id: str | None) -> bool:
    settings = get_settings()
    if mock:
        settings = settings.model_copy(update={"snowflake_mock_mode": True})

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: Missing configuration: {', '.join(missing)}")
        return False

    service = PreloadingService(build_data_source(settings, user_id_provider=lambda: user_id))
    await service.preload_all()

    status = service.get_cache_status()
    print(render_cache_status(status, enabled=True))
    return not status.has_errors


def main():
    parser = argparse.ArgumentParser(description='Preload programs, coaches and logbook entries once')
    parser.add_argument('--mock', action='store_true', help='Use in-memory sample data instead of Snowflake')
    parser.add_argument('--user-id', default=None, help='Only load logbook entries for this user')
    parser.add_argument('--verbose', action='store_true', help='Show debug logging')
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    success = asyncio.run(run(args.mock, args.user_id))
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
