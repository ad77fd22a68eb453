#!/usr/bin/env python3
"""
Watch a Studio's Processing Predictions
=======================================
Logs in, finds every prediction of a studio that is still processing and
polls the reconciliation endpoint until each one completes or fails.

Usage:
    python scripts/watch_predictions.py --studio-id <id> --email me@example.com --password ...
        [--base-url http://localhost:8000] [--interval 5]
"""

import argparse
import asyncio
import sys

import httpx

from headshots.config import get_settings
from headshots.models.prediction import PredictionStatus
from headshots.worker.poller import ApiReconcileClient, PredictionPoller


async def login(client: httpx.AsyncClient, email: str, password: str) -> str:
    response = await client.post("/api/auth/login/json", json={"email": email, "password": password})
    response.raise_for_status()
    return response.json()["access_token"]


async def processing_predictions(client: httpx.AsyncClient, studio_id: str, token: str) -> dict:
    """prediction id -> provider id, for the studio's predictions still in flight"""
    response = await client.get(
        f"/api/studios/{studio_id}",
        headers={"Authorization": f"Bearer {token}"},
    )
    response.raise_for_status()
    predictions = response.json()["data"]["predictions"]
    return {
        p["id"]: p["external_id"]
        for p in predictions
        if p["status"] == PredictionStatus.PROCESSING.value
    }


def print_result(prediction_id: str, result: dict):
    status = result.get("status")
    if status == PredictionStatus.COMPLETED.value:
        print(f"✓ {prediction_id}: {result.get('result_url')}")
    elif status == PredictionStatus.FAILED.value:
        print(f"✗ {prediction_id}: failed")
    else:
        print(f"… {prediction_id}: {status}")


async def watch(args) -> int:
    async with httpx.AsyncClient(base_url=args.base_url.rstrip("/"), timeout=30.0) as client:
        token = await login(client, args.email, args.password)
        pending = await processing_predictions(client, args.studio_id, token)

    if not pending:
        print("No processing predictions.")
        return 0

    print(f"Watching {len(pending)} prediction(s) every {args.interval}s")
    print("-" * 50)

    reconcile = ApiReconcileClient(args.base_url, args.studio_id, token, external_ids=pending)
    poller = PredictionPoller(reconcile, interval=args.interval, on_result=print_result)
    try:
        poller.track(pending)
        await poller.wait()
    finally:
        await poller.stop()
        await reconcile.aclose()

    print("-" * 50)
    print(f"Done: {len(poller.state.retired)} prediction(s) finished")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Poll a studio's processing predictions until they finish")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--password", required=True, help="Account password")
    parser.add_argument("--studio-id", required=True, help="Studio to watch")
    parser.add_argument(
        "--interval",
        type=float,
        default=get_settings().poll_interval_seconds,
        help="Seconds between polls (default: POLL_INTERVAL_SECONDS)",
    )
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(watch(args)))
    except KeyboardInterrupt:
        sys.exit(130)
    except httpx.HTTPError as e:
        print(f"Request failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
