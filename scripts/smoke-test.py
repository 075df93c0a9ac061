#!/usr/bin/env python3
"""
Smoke test for SecretShare staging/production deployments.

Flow:
1. Health check
2. Create a time-limited secret and read it back by id
3. Create a burn-after-reading secret with a custom name, read it by name
4. Confirm the burned secret is gone (404)

The target must accept the CAPTCHA token passed with --captcha-token. Cloudflare's
always-pass test secret key accepts the default dummy token.

Usage:
    ./scripts/smoke-test.py https://staging.example.com
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import base64
import json
import secrets
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

DEFAULT_CAPTCHA_TOKEN = "XXXX.DUMMY.TOKEN.XXXX"
DEFAULT_TIMEOUT_SECONDS = 30.0
MAX_ERROR_BODY_CHARS = 2_000


class ApiError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


@dataclass
class HttpClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def request(self, method: str, path: str, data: dict | None = None) -> tuple[int, bytes]:
        body = json.dumps(data).encode() if data is not None else None
        request = Request(
            f"{self.base_url}{path}",
            data=body,
            headers={"Content-Type": "application/json"},
            method=method,
        )
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                return response.getcode(), response.read()
        except HTTPError as e:
            return e.code, e.read() if e.fp else b""
        except (URLError, TimeoutError) as e:
            raise RuntimeError(f"Network error: {e}") from e

    def api_json(self, method: str, path: str, data: dict | None = None) -> dict[str, Any]:
        status, body = self.request(method, f"/api{path}", data)
        if status < 200 or status >= 300:
            raise ApiError(status, body.decode("utf-8", errors="replace")[:MAX_ERROR_BODY_CHARS])
        return json.loads(body.decode())


def generate_encrypted_content() -> dict[str, str]:
    """Random stand-ins for the browser's ciphertext, salt and IV."""
    return {
        "encrypted": base64.b64encode(secrets.token_bytes(64)).decode(),
        "salt": base64.b64encode(secrets.token_bytes(16)).decode(),
        "iv": base64.b64encode(secrets.token_bytes(12)).decode(),
    }


@dataclass
class SmokeContext:
    client: HttpClient
    captcha_token: str
    state: dict[str, Any] = field(default_factory=dict)


@dataclass
class Step:
    name: str
    fn: Callable[[SmokeContext], None]


def run_steps(ctx: SmokeContext, steps: list[Step]) -> bool:
    started = time.perf_counter()
    ok = True
    for step in steps:
        step_started = time.perf_counter()
        try:
            step.fn(ctx)
        except Exception as e:
            log(f"FAIL {step.name}: {e}")
            ok = False
            break
        log(f"PASS {step.name} ({time.perf_counter() - step_started:.2f}s)")
    log(f"{'OK' if ok else 'FAILED'} in {time.perf_counter() - started:.2f}s")
    return ok


def step_health(ctx: SmokeContext) -> None:
    status, body = ctx.client.request("GET", "/health")
    if status != 200:
        raise ApiError(status, body.decode("utf-8", errors="replace"))


def step_create_and_view(ctx: SmokeContext) -> None:
    content = generate_encrypted_content()
    created = ctx.client.api_json(
        "POST",
        "/secrets",
        {"encryptedContent": content, "captchaToken": ctx.captcha_token},
    )
    viewed = ctx.client.api_json(
        "POST", f"/secrets/{created['id']}", {"captchaToken": ctx.captcha_token}
    )
    if viewed["encryptedContent"] != content:
        raise RuntimeError("Read back content does not match what was stored")
    if viewed["isBurnAfterReading"] or not viewed.get("expiresAt"):
        raise RuntimeError(f"Unexpected metadata: {viewed}")


def step_burn_by_name(ctx: SmokeContext) -> None:
    name = f"smoke{secrets.token_hex(8)}"
    content = generate_encrypted_content()
    created = ctx.client.api_json(
        "POST",
        "/secrets",
        {
            "encryptedContent": content,
            "customName": name,
            "maxViews": 1,
            "captchaToken": ctx.captcha_token,
        },
    )
    viewed = ctx.client.api_json(
        "POST", f"/secrets/name/{name}", {"captchaToken": ctx.captcha_token}
    )
    if viewed["encryptedContent"] != content or not viewed["isBurnAfterReading"]:
        raise RuntimeError(f"Unexpected burn-after-reading response: {viewed}")
    ctx.state["burned_id"] = created["id"]


def step_burned_is_gone(ctx: SmokeContext) -> None:
    status, body = ctx.client.request(
        "POST",
        f"/api/secrets/{ctx.state['burned_id']}",
        {"captchaToken": ctx.captcha_token},
    )
    if status != 404:
        raise ApiError(status, body.decode("utf-8", errors="replace"))


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("base_url", help="Deployment base URL, e.g. https://staging.example.com")
    parser.add_argument("--health-only", action="store_true")
    parser.add_argument("--captcha-token", default=DEFAULT_CAPTCHA_TOKEN)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS)
    args = parser.parse_args()

    ctx = SmokeContext(
        client=HttpClient(args.base_url.rstrip("/"), timeout_seconds=args.timeout),
        captcha_token=args.captcha_token,
    )
    steps = [Step("health", step_health)]
    if not args.health_only:
        steps += [
            Step("create_and_view", step_create_and_view),
            Step("burn_by_name", step_burn_by_name),
            Step("burned_is_gone", step_burned_is_gone),
        ]

    return 0 if run_steps(ctx, steps) else 1


if __name__ == "__main__":
    sys.exit(main())
