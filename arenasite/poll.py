"""Trigger a redeploy when the channel's block count changes.

Only the number of blocks is compared between runs, so edits to existing
blocks do not trigger a deploy; use ``--force`` for those.
"""
from __future__ import annotations

import argparse
import datetime as dt
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import requests
from dotenv import load_dotenv

from .arena import ArenaClient, FetchError
from .config import ConfigError, Settings
from .state import load_state, write_state

DEFAULT_STATE_FILE = ".arena-state.json"
VERCEL_DEPLOYMENTS_URL = "https://api.vercel.com/v1/deployments"
REQUEST_TIMEOUT = 30


@dataclass(frozen=True)
class DeploySettings:
    webhook_url: str
    api_token: str = ""

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DeploySettings":
        env = os.environ if env is None else env
        webhook_url = (env.get("VERCEL_DEPLOY_HOOK_URL") or "").strip()
        if not webhook_url:
            raise ConfigError("VERCEL_DEPLOY_HOOK_URL is required")
        return cls(webhook_url=webhook_url, api_token=(env.get("VERCEL_API_TOKEN") or "").strip())


def has_changed(state: dict, count: int) -> bool:
    previous = state.get("count")
    if previous is None:
        return True
    try:
        return int(previous) != count
    except (TypeError, ValueError):
        return True


def job_id_from(data: Optional[dict]) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    job = data.get("job")
    if isinstance(job, dict) and job.get("id"):
        return str(job["id"])
    return None


def trigger_deploy(webhook_url: str) -> Optional[dict]:
    print(f"Using webhook URL: {webhook_url[:30]}...")
    print("Triggering deploy...")
    response = requests.post(webhook_url, json={}, timeout=REQUEST_TIMEOUT)
    print(f"Deploy response: {response.status_code} {response.text}")
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError:
        print("Could not parse response as JSON")
        return None
    job_id = job_id_from(data)
    if job_id:
        print(f"Deploy job ID: {job_id}")
    return data


def check_deploy_status(job_id: str, api_token: str) -> dict:
    print(f"Checking status of job {job_id}...")
    response = requests.get(
        f"{VERCEL_DEPLOYMENTS_URL}/{job_id}",
        headers={"Authorization": f"Bearer {api_token}"},
        timeout=REQUEST_TIMEOUT,
    )
    response.raise_for_status()
    data = response.json()
    print(f"Deployment status: {data.get('state')}")
    print(f"Project ID: {data.get('projectId')}")
    return data


def poll_once(client: ArenaClient, deploy: DeploySettings, state_file: Path, force: bool = False) -> bool:
    print("Checking Arena for changes...")
    count = client.fetch_block_count()
    print(f"Current block count: {count}")
    state = load_state(state_file)
    if not force and not has_changed(state, count):
        print("No changes detected. Deploy skipped.")
        return False

    data = trigger_deploy(deploy.webhook_url)
    job_id = job_id_from(data)
    if not job_id:
        print("No valid job ID received from deploy trigger")
    elif deploy.api_token:
        check_deploy_status(job_id, deploy.api_token)
    write_state(
        state_file,
        {"count": count, "deployed_at": dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat()},
    )
    print("Deploy triggered successfully")
    return True


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Redeploy the site when the Are.na channel changes.")
    parser.add_argument("--state-file", default=DEFAULT_STATE_FILE, help="JSON file holding the last block count.")
    parser.add_argument("--force", action="store_true", help="Trigger a deploy even if nothing changed.")
    parser.add_argument("--watch", action="store_true", help="Keep polling every POLL_INTERVAL milliseconds.")
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        settings = Settings.from_env(require_output=False)
        deploy = DeploySettings.from_env()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    client = ArenaClient(settings)
    state_file = Path(args.state_file)
    while True:
        try:
            poll_once(client, deploy, state_file, force=args.force)
        except (FetchError, requests.RequestException) as exc:
            print(f"Polling failed: {exc}", file=sys.stderr)
            if not args.watch:
                sys.exit(1)
        if not args.watch:
            break
        time.sleep(settings.poll_interval / 1000)


if __name__ == "__main__":
    main()
