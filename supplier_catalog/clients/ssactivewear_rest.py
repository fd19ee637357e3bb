from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from supplier_catalog.exceptions import SupplierProtocolError, SupplierTimeoutError, SupplierTransportError
from supplier_catalog.normalization import read_number, to_ssa_product_id, to_style_number
from supplier_catalog.parsers.rest import RestBundle, build_inventory_from_rest, build_product_from_rest
from supplier_catalog.records import InventoryFilter, ParsedInventory, ProductRecord
from supplier_catalog.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class SsActivewearRestClient:
    """
    SSActivewear REST v2 client (HTTP Basic auth: account number / API key).

    The API reports its per-window budget in X-Rate-Limit-Remaining / X-Rate-Limit-Reset; once the
    remaining budget drops to `min_remaining` the next request waits for the window to reset.
    """

    source_name = "ssactivewear_rest"

    def __init__(
        self,
        account_number: str,
        api_key: str,
        base_url: str = "https://api.ssactivewear.com/V2",
        timeout: float = 30.0,
        min_remaining: int = 1,
        default_wait: float = 1.1,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.account_number = account_number
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.min_remaining = min_remaining
        self.default_wait = default_wait
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._blocked_until: float | None = None

    @classmethod
    def from_settings(
        cls, config: Settings | None = None, transport: httpx.BaseTransport | None = None
    ) -> "SsActivewearRestClient":
        config = config or default_settings
        config.require("ssactivewear_account_number", "ssactivewear_api_key")
        return cls(
            account_number=config.ssactivewear_account_number.strip(),
            api_key=config.ssactivewear_api_key.strip(),
            base_url=config.ssactivewear_rest_base_url,
            timeout=config.supplier_request_timeout,
            min_remaining=config.ssactivewear_rate_limit_min_remaining,
            default_wait=config.ssactivewear_rate_limit_default_wait,
            transport=transport,
        )

    def _wait_for_window(self) -> None:
        if self._blocked_until is None:
            return
        delay = self._blocked_until - self._clock()
        self._blocked_until = None
        if delay > 0:
            logger.info(f"[REST] rate limit reached, waiting {delay:.2f}s")
            self._sleep(delay)

    def _track_rate_limit(self, resp: httpx.Response) -> None:
        remaining = read_number(resp.headers.get("X-Rate-Limit-Remaining"))
        if remaining is None or remaining > self.min_remaining:
            return
        reset = read_number(resp.headers.get("X-Rate-Limit-Reset"))
        wait = max(reset if reset is not None else 0.0, self.default_wait)
        self._blocked_until = self._clock() + wait

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON resource. 404 means "no match" for this API and returns None."""
        self._wait_for_window()
        url = f"{self.base_url}{path}"
        timeout = httpx.Timeout(self.timeout, connect=min(10.0, self.timeout))
        try:
            with httpx.Client(
                timeout=timeout,
                auth=httpx.BasicAuth(self.account_number, self.api_key),
                transport=self._transport,
            ) as client:
                resp = client.get(url, params=params, headers={"Accept": "application/json"})
        except httpx.TimeoutException as exc:
            raise SupplierTimeoutError("ssactivewear rest", self.timeout, url=url) from exc
        except httpx.HTTPError as exc:
            raise SupplierTransportError(f"SSActivewear REST request failed: {exc}", url=url) from exc

        self._track_rate_limit(resp)

        if resp.status_code == 404:
            return None
        if resp.status_code in (401, 403):
            raise SupplierTransportError(
                f"SSActivewear REST authentication failed: {resp.status_code}",
                status_code=resp.status_code,
                url=url,
                response_body=resp.text,
                recoverable=False,
            )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise SupplierTransportError(
                f"SSActivewear REST request failed: {resp.status_code} {resp.reason_phrase} - {resp.text}",
                status_code=resp.status_code,
                url=url,
                response_body=resp.text,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise SupplierProtocolError(
                "SSActivewear REST returned invalid JSON",
                source=self.source_name,
                payload_excerpt=resp.text,
            ) from exc

    def fetch_products(self, style: str) -> list[dict[str, Any]]:
        """All SKU rows for a style."""
        data = self._get("/products/", params={"style": style})
        if data is None:
            return []
        if not isinstance(data, list):
            raise SupplierProtocolError("SSActivewear /products returned a non-list payload", source=self.source_name)
        return [row for row in data if isinstance(row, dict)]

    def fetch_style(self, style: str) -> dict[str, Any] | None:
        data = self._get("/styles/", params={"style": style})
        if isinstance(data, list):
            data = data[0] if data else None
        return data if isinstance(data, dict) else None

    def fetch_bundle(self, product_id: str) -> RestBundle:
        style_number = to_style_number(to_ssa_product_id(product_id))
        products = self.fetch_products(style_number)
        style = self.fetch_style(style_number) if products else None
        logger.debug(f"[REST] {product_id}: {len(products)} product rows, style {'found' if style else 'missing'}")
        return RestBundle(products=products, style=style)

    def fetch_product(self, product_id: str) -> ProductRecord:
        return build_product_from_rest(to_ssa_product_id(product_id), self.fetch_bundle(product_id))

    def fetch_inventory(self, product_id: str, inventory_filter: InventoryFilter | None = None) -> ParsedInventory:
        normalized = to_ssa_product_id(product_id)
        products = self.fetch_products(to_style_number(normalized))
        if not products:
            raise SupplierProtocolError(
                f"SSActivewear REST returned no products for {normalized}", source=self.source_name
            )
        return build_inventory_from_rest(normalized, products, inventory_filter)
