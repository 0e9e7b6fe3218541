"""Client for the remote signing/broadcast service.

The service is opaque: it receives destination, value and calldata for a
chain and returns a transaction hash or a rejection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import resolve_chain
from ..core.errors import SubmissionError, UpstreamTimeoutError, UpstreamUnavailableError
from .http import request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionHandle:
    tx_hash: str
    chain: str


class RemoteSigner:
    name = "signer"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_urls: List[str] = [(base_url or settings.signer_base_url).rstrip("/")]
        self.api_key = api_key if api_key is not None else settings.signer_api_key
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self.api_key:
            headers["authorization"] = f"Bearer {self.api_key}"
        return headers

    async def submit(
        self,
        *,
        chain: str,
        to: str,
        data: str,
        value: int = 0,
        action: str = "transaction",
        venue: Optional[str] = None,
    ) -> SubmissionHandle:
        """Sign and broadcast one call. Every failure raises :class:`SubmissionError`."""
        resolved = resolve_chain(chain)
        if resolved is None:
            raise SubmissionError(f"unknown chain {chain}", action=action, chain=chain, venue=venue, to_address=to)
        if not self.base_urls[0]:
            raise SubmissionError("no signing service configured", action=action, chain=chain, venue=venue, to_address=to)

        payload = {
            "chainId": resolved.chain_id,
            "to": to,
            "data": data,
            "value": str(value),
        }
        try:
            resp = await request(
                "POST",
                self.base_urls,
                "/transactions",
                provider=self.name,
                timeout_s=self.timeout_s,
                headers=self._headers(),
                transport=self._transport,
                chain=chain,
                json=payload,
            )
        except httpx.HTTPStatusError as exc:
            raise SubmissionError(
                f"HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                action=action,
                chain=chain,
                venue=venue,
                to_address=to,
            ) from exc
        except (UpstreamTimeoutError, UpstreamUnavailableError) as exc:
            raise SubmissionError(exc.message, action=action, chain=chain, venue=venue, to_address=to) from exc

        body = resp.json()
        tx_hash = body.get("txHash") or body.get("hash")
        if not tx_hash:
            raise SubmissionError(
                body.get("error") or "signer returned no transaction hash",
                action=action,
                chain=chain,
                venue=venue,
                to_address=to,
            )

        logger.info("Submitted %s on %s to %s: %s", action, resolved.name, to, tx_hash)
        return SubmissionHandle(tx_hash=tx_hash, chain=resolved.name)
