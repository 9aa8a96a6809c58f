#!/usr/bin/env python3
"""
Run the prediction pipeline end to end.

Fetches matches from API-Sports, recomputes features for every stored
match and prints a prediction as JSON. Without --match-id the first fetched
match is predicted, or else the first stored live/upcoming match.

Usage:
    # Live football matches, predict the first one fetched
    python scripts/run_pipeline.py

    # Upcoming basketball games for today
    python scripts/run_pipeline.py --sport basketball --mode upcoming --date-range today

    # Skip fetching and predict a stored match
    python scripts/run_pipeline.py --skip-fetch --match-id 5000000100

    # Skip fetching and predict the next stored upcoming match
    python scripts/run_pipeline.py --skip-fetch --mode upcoming
"""

import argparse
import asyncio
import json
import logging
import sys

from matchcast.database import AsyncSessionLocal, close_db, init_db
from matchcast.etl import APISportsProvider
from matchcast.features import FeatureEngine
from matchcast.prediction import PredictionService
from matchcast.schemas import PredictionError
from matchcast.sports import SUPPORTED_SPORTS

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_pipeline(
    sport: str,
    mode: str,
    limit: int,
    date_range: str = None,
    match_id: str = None,
    skip_fetch: bool = False,
) -> int:
    await init_db()
    provider = APISportsProvider(AsyncSessionLocal)
    service = PredictionService(AsyncSessionLocal, provider=provider)

    try:
        fetched = []
        if not skip_fetch:
            fetched = await provider.fetch_matches(sport, mode=mode, limit=limit, date_range=date_range)
            logger.info(f"Fetched {len(fetched)} {sport} matches ({mode})")

        async with AsyncSessionLocal() as session:
            records = await FeatureEngine(session).calculate_features()
        logger.info(f"Computed features for {len(records)} matches")

        target = match_id
        if target is None and fetched:
            target = fetched[0].match_id
        if target is None:
            stored = await provider.load_matches(sport, mode=mode, limit=limit, date_range=date_range)
            logger.info(f"Found {len(stored)} stored {sport} matches ({mode})")
            if not stored:
                logger.warning("No match to predict: nothing fetched or stored and no --match-id given")
                return 1
            target = stored[0].match_id

        result = await service.predict(target)
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return 1 if isinstance(result, PredictionError) else 0
    finally:
        await service.close()
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Fetch matches, compute features and predict one")
    parser.add_argument(
        "--sport",
        choices=SUPPORTED_SPORTS,
        default="football",
        help="Sport to fetch (default: football)",
    )
    parser.add_argument(
        "--mode",
        choices=["live", "upcoming"],
        default="live",
        help="Fixture selection (default: live)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Max upcoming matches to fetch (default: 20)",
    )
    parser.add_argument(
        "--date-range",
        choices=["today"],
        default=None,
        help="Restrict upcoming matches to today",
    )
    parser.add_argument(
        "--match-id",
        default=None,
        help="Match to predict (default: first fetched match)",
    )
    parser.add_argument(
        "--skip-fetch",
        action="store_true",
        help="Do not call the provider; use stored matches only",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run_pipeline(
        sport=args.sport,
        mode=args.mode,
        limit=args.limit,
        date_range=args.date_range,
        match_id=args.match_id,
        skip_fetch=args.skip_fetch,
    )))


if __name__ == "__main__":
    main()
