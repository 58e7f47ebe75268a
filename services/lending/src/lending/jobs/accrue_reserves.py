"""
Reserve keeper.

Accrues every reserve so indices and rates stay current even when a reserve
sees no user activity. Each accrual's observation reaches the database
through the pool's persistence listener.

Inside the API process the scheduler calls ``accrue_all_reserves`` on the
live pool. From the command line the job drives a running service over HTTP,
since the ledger lives in that process:

Usage:
    python -m services.lending.src.lending.jobs.accrue_reserves
    python -m services.lending.src.lending.jobs.accrue_reserves --api-url http://localhost:8000
"""
import argparse
import logging
import sys

import httpx

from services.lending.src.lending.domain.errors import PoolError
from services.lending.src.lending.domain.pool import LendingPool

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


def accrue_all_reserves(pool: LendingPool) -> dict[str, int]:
    """
    Accrue every reserve of the pool.

    Returns:
        Dict mapping asset to its borrow index after accrual, or -1 on error
    """
    results: dict[str, int] = {}
    for snapshot in pool.reserves():
        asset = snapshot.asset
        try:
            pool.accrue(asset)
            results[asset] = pool.reserve_state(asset).borrow_index
        except PoolError as e:
            logger.error(f"Accrual failed for {asset}: {e}")
            results[asset] = -1
    return results


def accrue_via_api(client: httpx.Client) -> dict[str, int]:
    """
    Accrue every reserve of a running service through its HTTP API.

    Args:
        client: Client whose base URL points at the service

    Returns:
        Dict mapping asset to its borrow index after accrual, or -1 on error

    Raises:
        httpx.HTTPError: If the reserve list cannot be fetched
    """
    response = client.get("/api/reserves")
    response.raise_for_status()

    results: dict[str, int] = {}
    for reserve in response.json():
        asset = reserve["asset"]
        accrued = client.post(f"/api/reserves/{asset}/accrue")
        if accrued.status_code != 200:
            logger.error(f"Accrual failed for {asset}: {accrued.status_code} {accrued.text}")
            results[asset] = -1
            continue
        results[asset] = int(accrued.json()["borrow_index"])
    return results


def main() -> int:
    parser = argparse.ArgumentParser(description="Accrue interest on every reserve")
    parser.add_argument(
        "--api-url",
        type=str,
        default=DEFAULT_API_URL,
        help=f"Base URL of the running lending service (default: {DEFAULT_API_URL})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="HTTP timeout in seconds (default: 30)",
    )

    args = parser.parse_args()

    try:
        with httpx.Client(base_url=args.api_url, timeout=args.timeout) as client:
            results = accrue_via_api(client)
    except httpx.HTTPError as e:
        logger.error(f"Accrual failed: {e}", exc_info=True)
        return 1

    if not results:
        logger.error("Service reported no reserves")
        return 1

    logger.info("Accrual complete:")
    for asset, index in results.items():
        status = f"borrow_index={index}" if index >= 0 else "FAILED"
        logger.info(f"  {asset}: {status}")
    return 0 if all(i >= 0 for i in results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
