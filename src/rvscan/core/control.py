"""IR command dispatch over the player's CGI endpoint."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import httpx

from rvscan.config import ControlConfig
from rvscan.errors import CommandError, InvalidIRCodeError
from rvscan.models import Device

from .prober import describe_error, root_url

logger = logging.getLogger(__name__)

CGI_PATH = "/cgi-bin/do"
USER_AGENT = "rvscan-remote/1.0"

IR_CODES: dict[str, str] = {
    "next": "E11E4040",
    "previous": "E01F4040",
    "fast_forward": "E41B8F00",
    "fast_reverse": "E31C8F00",
    "stop": "BD424040",
    "skip_60_forward": "EE114040",
    "skip_60_rewind": "EF104040",
    "skip_10_forward": "BF404040",
    "skip_10_rewind": "DF204040",
}

_HEX_RE = re.compile(r"^[0-9A-F]+$")


def normalize_ir_code(code: str) -> str:
    """Resolve a named command or validate a raw hexadecimal code."""
    named = IR_CODES.get(code.strip().lower())
    if named is not None:
        return named
    cleaned = code.strip().upper()
    if cleaned.startswith("0X"):
        cleaned = cleaned[2:]
    if not _HEX_RE.match(cleaned):
        raise InvalidIRCodeError(f"Not a hexadecimal IR code: {code!r}")
    return cleaned


async def send_ir_code(
    client: httpx.AsyncClient,
    device: Device,
    code: str,
    config: ControlConfig | None = None,
) -> dict[str, Any]:
    """Send one IR code to *device* and return the decoded response."""
    config = config or ControlConfig()
    ir_code = normalize_ir_code(code)
    url = root_url(device.ip, CGI_PATH)
    params = {"cmd": "ir_code", "ir_code": ir_code}

    logger.debug("Sending IR code %s to %s (%s)", ir_code, device.name, device.ip)
    try:
        async with asyncio.timeout(config.timeout):
            response = await client.get(
                url,
                params=params,
                headers={
                    "Accept": "*/*",
                    "User-Agent": USER_AGENT,
                    "Cache-Control": "no-cache",
                },
                timeout=config.timeout,
            )
    except TimeoutError as exc:
        raise CommandError(
            f"{device.name} at {device.ip} did not answer within {config.timeout}s"
        ) from exc
    except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
        raise CommandError(
            f"Could not reach {device.name} at {device.ip}: {describe_error(exc)}"
        ) from exc

    if not response.is_success:
        raise CommandError(
            f"Command failed: {response.status_code} {response.reason_phrase}"
        )

    content_type = response.headers.get("content-type", "").lower()
    try:
        if "json" in content_type:
            payload = response.json()
            return payload if isinstance(payload, dict) else {"response": payload}
        return {"success": True, "response": response.text}
    except (ValueError, UnicodeDecodeError):
        return {"success": True, "response": "command_sent"}
