"""Cloudflare Turnstile CAPTCHA verification."""

from dataclasses import dataclass, field
from typing import Protocol

import httpx
import structlog

from secretshare.config import TURNSTILE_VERIFY_URL

logger = structlog.get_logger()


class CaptchaVerificationError(Exception):
    """The verification call itself failed (network, HTTP status or bad response body)."""


@dataclass(frozen=True, slots=True)
class CaptchaResult:
    success: bool
    error_codes: list[str] = field(default_factory=list)


class CaptchaVerifier(Protocol):
    def verify(self, token: str, remote_ip: str | None = None) -> CaptchaResult: ...


class TurnstileClient:
    def __init__(
        self,
        secret_key: str,
        *,
        verify_url: str = TURNSTILE_VERIFY_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._verify_url = verify_url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def verify(self, token: str, remote_ip: str | None = None) -> CaptchaResult:
        """
        Verify a Turnstile token.

        Raises CaptchaVerificationError when the answer cannot be obtained;
        callers must treat that as a failed check, never as a pass.
        """
        data = {"secret": self._secret_key, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            response = self._client.post(self._verify_url, data=data)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("captcha_verify_http_error", status_code=e.response.status_code)
            raise CaptchaVerificationError("failed to verify token") from e
        except httpx.RequestError as e:
            logger.error("captcha_verify_request_error", error=str(e))
            raise CaptchaVerificationError("failed to verify token") from e
        except ValueError as e:
            logger.error("captcha_verify_decode_error", error=str(e))
            raise CaptchaVerificationError("failed to decode response") from e

        if not isinstance(body, dict):
            raise CaptchaVerificationError("unexpected response format")

        return CaptchaResult(
            success=body.get("success") is True,
            error_codes=list(body.get("error-codes") or []),
        )

    def close(self) -> None:
        self._client.close()
