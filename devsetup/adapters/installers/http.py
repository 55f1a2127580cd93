"""
HTTP adapter — JSON requests to web APIs.

Request headers (credentials) never appear in receipts or logs.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from devsetup.adapters.base import Adapter, ExecutionContext
from devsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)


class HttpAdapter(Adapter):
    """Send a JSON request and report the status code.

    Action params:
        method (str): HTTP method.
        url (str): Absolute http(s) URL.
        payload (dict | None): JSON body.
        headers (dict): Extra request headers.
        timeout (int): Seconds (default: 15).
    """

    @property
    def name(self) -> str:
        return "http"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        url = context.param("url", "")
        if not url.startswith(("https://", "http://")):
            return False, f"Unsupported URL: {url!r}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        url = context.param("url")
        method = context.param("method", "GET")
        payload = context.param("payload")
        headers = {"Accept": "application/json", **context.param("headers", {})}

        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=context.param("timeout", 15)) as resp:
                body = resp.read().decode("utf-8", errors="replace")
                status = resp.status
        except urllib.error.HTTPError as e:
            return self._fail(
                context,
                f"HTTP {e.code}",
                return_code=e.code,
                metadata={"status": e.code},
            )
        except (urllib.error.URLError, OSError) as e:
            return self._fail(context, f"Request failed: {e}")

        if 200 <= status < 300:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=body,
                return_code=status,
                metadata={"status": status},
            )
        return self._fail(context, f"HTTP {status}", return_code=status, metadata={"status": status})
