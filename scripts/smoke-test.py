#!/usr/bin/env python3
"""
Smoke test for Control Center deployments.

Flow:
1. Health check
2. Bot registration (POST /bots) and token-omission check
3. Listing never exposes tokens
4. Status report round trip (POST/GET /bots/{id}/status)
5. Command creation with a prompt
6. Cleanup (DELETE /bots/{id})

Usage:
    ./scripts/smoke-test.py https://staging.example.com
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import json
import secrets
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

DEFAULT_TIMEOUT_SECONDS = 30.0
MAX_ERROR_BODY_CHARS = 2_000
TOKEN_KEYS = ("token", "encrypted_token", "encryptedToken")


class ApiError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class SmokeFailure(RuntimeError):
    def __init__(self, step: str, message: str):
        super().__init__(f"[{step}] {message}")
        self.step = step


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


@dataclass
class HttpClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def request(self, method: str, path: str, data: dict[str, Any] | None = None) -> tuple[int, Any]:
        body = json.dumps(data).encode() if data is not None else None
        request = Request(
            f"{self.base_url}{path}",
            data=body,
            headers={"Content-Type": "application/json"},
            method=method,
        )
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                raw = response.read()
                return response.getcode(), json.loads(raw) if raw else None
        except HTTPError as e:
            raw = e.read() if e.fp else b""
            raise ApiError(e.code, raw.decode("utf-8", errors="replace")[:MAX_ERROR_BODY_CHARS]) from e
        except URLError as e:
            raise RuntimeError(f"Network error: {e}") from e

    def api(self, method: str, path: str, data: dict[str, Any] | None = None) -> Any:
        _, payload = self.request(method, f"/api/v1{path}", data)
        return payload


@dataclass
class SmokeContext:
    client: HttpClient
    bot_id: str | None = None


def assert_no_token(step: str, payload: Any) -> None:
    if isinstance(payload, dict):
        leaked = [key for key in TOKEN_KEYS if key in payload]
        if leaked:
            raise SmokeFailure(step, f"response leaked token field(s): {leaked}")


def step_health(ctx: SmokeContext) -> None:
    status, payload = ctx.client.request("GET", "/health")
    if status != 200 or payload != {"status": "healthy"}:
        raise SmokeFailure("health", f"unexpected response {status}: {payload!r}")


def step_create_bot(ctx: SmokeContext) -> None:
    bot = ctx.client.api(
        "POST",
        "/bots",
        {
            "name": "smoke-test-bot",
            "client_id": str(10**17 + secrets.randbelow(10**17)),
            "token": f"smoke.{secrets.token_urlsafe(24)}",
        },
    )
    assert_no_token("create_bot", bot)
    if bot.get("status") != "offline":
        raise SmokeFailure("create_bot", f"new bot should be offline, got {bot.get('status')!r}")
    ctx.bot_id = bot["id"]


def step_list_bots(ctx: SmokeContext) -> None:
    bots = ctx.client.api("GET", "/bots")
    for bot in bots:
        assert_no_token("list_bots", bot)
    if not any(bot["id"] == ctx.bot_id for bot in bots):
        raise SmokeFailure("list_bots", "created bot missing from listing")


def step_status(ctx: SmokeContext) -> None:
    updated = ctx.client.api("POST", f"/bots/{ctx.bot_id}/status", {"status": "starting"})
    assert_no_token("status", updated)
    status = ctx.client.api("GET", f"/bots/{ctx.bot_id}/status")
    if status.get("status") != "starting" or not status.get("last_active"):
        raise SmokeFailure("status", f"status not recorded: {status!r}")


def step_command(ctx: SmokeContext) -> None:
    command = ctx.client.api(
        "POST",
        "/commands",
        {
            "bot_id": ctx.bot_id,
            "name": "ask",
            "description": "Ask a question",
            "options": [{"name": "question", "description": "Question", "type": "string", "required": True}],
            "prompt": {"content": "Question: {question}", "api_integration": "openai"},
        },
    )
    prompt = command.get("prompt") or {}
    if prompt.get("variables") != ["question"]:
        raise SmokeFailure("command", f"prompt variables not extracted: {prompt!r}")


def step_cleanup(ctx: SmokeContext) -> None:
    if ctx.bot_id:
        ctx.client.request("DELETE", f"/api/v1/bots/{ctx.bot_id}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke test a Control Center deployment")
    parser.add_argument("base_url", help="Base URL, e.g. https://staging.example.com")
    parser.add_argument("--health-only", action="store_true", help="Only run the health check")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS)
    args = parser.parse_args()

    ctx = SmokeContext(client=HttpClient(args.base_url.rstrip("/"), args.timeout))
    steps = [("health", step_health)]
    if not args.health_only:
        steps += [
            ("create_bot", step_create_bot),
            ("list_bots", step_list_bots),
            ("status", step_status),
            ("command", step_command),
        ]

    try:
        for name, step in steps:
            log(f"-> {name}")
            step(ctx)
        log("All smoke checks passed")
        return 0
    except (SmokeFailure, ApiError, RuntimeError) as e:
        log(f"FAILED: {e}")
        return 1
    finally:
        if not args.health_only:
            try:
                step_cleanup(ctx)
            except (ApiError, RuntimeError) as e:
                log(f"cleanup failed: {e}")


if __name__ == "__main__":
    sys.exit(main())
