"""
PromoStandards SOAP transport.

Credentials travel in the request body (id/password) per the PromoStandards contract, not in
WS-Security headers. Product Data 2.0.0 and Inventory 2.0.0 services are supported; SanMar's
paged catalog service shares the envelope and transport code.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import httpx
from lxml import etree

from supplier_catalog.exceptions import SupplierTimeoutError, SupplierTransportError
from supplier_catalog.normalization import to_ssa_product_id
from supplier_catalog.parsers.promostandards import (
    parse_inventory_response,
    parse_product_response,
    parse_product_sellable_response,
)
from supplier_catalog.records import InventoryFilter, ParsedInventory, ProductRecord
from supplier_catalog.settings import Settings, settings as default_settings
from supplier_catalog.xml_payload import fault_message, find_soap_fault, soap_body

logger = logging.getLogger(__name__)

SOAP_ENVELOPE_NS = "http://schemas.xmlsoap.org/soap/envelope/"
PRODUCT_DATA_NS = "http://www.promostandards.org/WSDL/ProductDataService/2.0.0/"
PRODUCT_DATA_SHARED_NS = "http://www.promostandards.org/WSDL/ProductDataService/2.0.0/SharedObjects/"
INVENTORY_NS = "http://www.promostandards.org/WSDL/Inventory/2.0.0/"
INVENTORY_SHARED_NS = "http://www.promostandards.org/WSDL/Inventory/2.0.0/SharedObjects/"
SANMAR_AUTH_NS = "http://tempuri.org/"
SANMAR_WEBSERVICE_NS = "http://impl.webservice.integration.sanmar.com/"

WS_VERSION = "2.0.0"
COLOR_FILTER_PART_ID = "partId"
COLOR_FILTER_PART_COLOR = "partColor"


def _shared(parent: etree._Element, shared_ns: str, name: str, text: Any | None = None) -> etree._Element:
    element = etree.SubElement(parent, f"{{{shared_ns}}}{name}")
    if text is not None:
        element.text = str(text)
    return element


def build_envelope(request: etree._Element, header: etree._Element | None = None) -> str:
    """Wrap a request element into a SOAP 1.1 envelope."""
    envelope = etree.Element(f"{{{SOAP_ENVELOPE_NS}}}Envelope", nsmap={"soapenv": SOAP_ENVELOPE_NS})
    header_el = etree.SubElement(envelope, f"{{{SOAP_ENVELOPE_NS}}}Header")
    if header is not None:
        header_el.append(header)
    body = etree.SubElement(envelope, f"{{{SOAP_ENVELOPE_NS}}}Body")
    body.append(request)
    return etree.tostring(envelope, xml_declaration=True, encoding="utf-8").decode("utf-8")


def _request_root(name: str, namespace: str, shared_ns: str) -> etree._Element:
    return etree.Element(f"{{{namespace}}}{name}", nsmap={None: namespace, "shared": shared_ns})


def _credentials(root: etree._Element, shared_ns: str, account: str, password: str) -> None:
    _shared(root, shared_ns, "wsVersion", WS_VERSION)
    _shared(root, shared_ns, "id", account)
    _shared(root, shared_ns, "password", password)


def build_get_product_request(
    account: str,
    password: str,
    product_id: str,
    localization_country: str = "US",
    localization_language: str = "EN",
) -> etree._Element:
    root = _request_root("GetProductRequest", PRODUCT_DATA_NS, PRODUCT_DATA_SHARED_NS)
    _credentials(root, PRODUCT_DATA_SHARED_NS, account, password)
    _shared(root, PRODUCT_DATA_SHARED_NS, "localizationCountry", localization_country)
    _shared(root, PRODUCT_DATA_SHARED_NS, "localizationLanguage", localization_language)
    _shared(root, PRODUCT_DATA_SHARED_NS, "productId", product_id)
    return root


def build_get_product_sellable_request(
    account: str,
    password: str,
    modified_since: datetime | None = None,
    localization_country: str = "US",
    localization_language: str = "EN",
) -> etree._Element:
    root = _request_root("GetProductSellableRequest", PRODUCT_DATA_NS, PRODUCT_DATA_SHARED_NS)
    _credentials(root, PRODUCT_DATA_SHARED_NS, account, password)
    if modified_since is not None:
        _shared(root, PRODUCT_DATA_SHARED_NS, "lastChangeDate", _iso(modified_since))
    _shared(root, PRODUCT_DATA_SHARED_NS, "localizationCountry", localization_country)
    _shared(root, PRODUCT_DATA_SHARED_NS, "localizationLanguage", localization_language)
    _shared(root, PRODUCT_DATA_SHARED_NS, "isSellable", "true")
    return root


def build_get_inventory_levels_request(
    account: str,
    password: str,
    product_id: str,
    inventory_filter: InventoryFilter | None = None,
    color_filter: str = COLOR_FILTER_PART_ID,
) -> etree._Element:
    """
    GetInventoryLevels 2.0.0 request.

    `color_filter` selects how the color/part narrowing is expressed: SSActivewear filters by
    partId, SanMar by PartColorArray/partColor.
    """
    root = _request_root("GetInventoryLevelsRequest", INVENTORY_NS, INVENTORY_SHARED_NS)
    _credentials(root, INVENTORY_SHARED_NS, account, password)
    _shared(root, INVENTORY_SHARED_NS, "productId", product_id)

    if inventory_filter is None or inventory_filter.is_empty():
        return root

    filter_el = _shared(root, INVENTORY_SHARED_NS, "Filter")
    if color_filter == COLOR_FILTER_PART_COLOR:
        if inventory_filter.part_id:
            part_array = _shared(filter_el, INVENTORY_SHARED_NS, "partIdArray")
            _shared(part_array, INVENTORY_SHARED_NS, "partId", inventory_filter.part_id)
        if inventory_filter.color:
            color_array = _shared(filter_el, INVENTORY_SHARED_NS, "PartColorArray")
            _shared(color_array, INVENTORY_SHARED_NS, "partColor", inventory_filter.color)
    else:
        if inventory_filter.part_id:
            _shared(filter_el, INVENTORY_SHARED_NS, "partId", inventory_filter.part_id)
    if inventory_filter.size:
        size_array = _shared(filter_el, INVENTORY_SHARED_NS, "LabelSizeArray")
        _shared(size_array, INVENTORY_SHARED_NS, "labelSize", inventory_filter.size.upper())
    if inventory_filter.warehouse_id:
        selection_array = _shared(filter_el, INVENTORY_SHARED_NS, "SelectionArray")
        _shared(selection_array, INVENTORY_SHARED_NS, "selection", inventory_filter.warehouse_id)
    if len(filter_el) == 0:
        root.remove(filter_el)
    return root


def build_sanmar_auth_header(username: str, password: str) -> etree._Element:
    header = etree.Element(f"{{{SANMAR_AUTH_NS}}}Authentication", nsmap={"tem": SANMAR_AUTH_NS})
    etree.SubElement(header, f"{{{SANMAR_AUTH_NS}}}UserName").text = username
    etree.SubElement(header, f"{{{SANMAR_AUTH_NS}}}Password").text = password
    return header


def build_operation_request(operation: str, payload: Mapping[str, Any], namespace: str = SANMAR_WEBSERVICE_NS) -> etree._Element:
    """Operation element from a plain mapping; nested mappings become nested elements."""
    root = etree.Element(f"{{{namespace}}}{operation}", nsmap={"web": namespace})
    _append_mapping(root, payload)
    return root


def _append_mapping(parent: etree._Element, payload: Mapping[str, Any]) -> None:
    for key, value in payload.items():
        if value is None:
            continue
        child = etree.SubElement(parent, key)
        if isinstance(value, Mapping):
            _append_mapping(child, value)
        elif isinstance(value, bool):
            child.text = "true" if value else "false"
        elif isinstance(value, datetime):
            child.text = _iso(value)
        else:
            child.text = str(value)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class SoapTransport:
    """POSTs envelopes with a SOAPAction header and a bounded timeout."""

    def __init__(self, timeout: float = 30.0, transport: httpx.BaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport

    def post(self, url: str, action: str, envelope: str, service: str) -> str:
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": action,
        }
        timeout = httpx.Timeout(self._timeout, connect=min(10.0, self._timeout))
        logger.debug(f"[SOAP] {service} {action} -> {url}")
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as client:
                resp = client.post(url, content=envelope.encode("utf-8"), headers=headers)
        except httpx.TimeoutException as exc:
            raise SupplierTimeoutError(service, self._timeout, url=url) from exc
        except httpx.HTTPError as exc:
            raise SupplierTransportError(f"PromoStandards request to {service} failed: {exc}", url=url) from exc

        body = resp.text
        if resp.status_code < 200 or resp.status_code >= 300:
            raise SupplierTransportError(
                f"PromoStandards request failed: {resp.status_code} {resp.reason_phrase} - {body}",
                status_code=resp.status_code,
                url=url,
                response_body=body,
            )

        fault = find_soap_fault(body)
        if fault is not None:
            code, reason = fault
            raise SupplierTransportError(
                f"PromoStandards request to {service} returned {fault_message(code, reason)} - {body}",
                status_code=resp.status_code,
                url=url,
                response_body=body,
                fault_code=code,
            )
        return body


class PromoStandardsClient:
    """
    Product Data + Inventory client for one supplier's PromoStandards endpoints.

    fetch_product / fetch_inventory return canonical records; the *_xml methods return the raw
    payloads for debugging and for callers that parse themselves.
    """

    source_name = "promostandards"

    def __init__(
        self,
        account: str,
        password: str,
        product_url: str | None,
        inventory_url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        color_filter: str = COLOR_FILTER_PART_ID,
        normalize_id: Callable[[str], str] = to_ssa_product_id,
        supplier: str = "SSACTIVEWEAR",
    ) -> None:
        self._account = account
        self._password = password
        self._product_url = product_url
        self._inventory_url = inventory_url
        self._color_filter = color_filter
        self._normalize_id = normalize_id
        self._soap = SoapTransport(timeout=timeout, transport=transport)
        self.supplier = supplier

    @classmethod
    def for_ssactivewear(
        cls, config: Settings | None = None, transport: httpx.BaseTransport | None = None
    ) -> "PromoStandardsClient":
        config = config or default_settings
        config.require("ssactivewear_account_number", "ssactivewear_api_key")
        return cls(
            account=config.ssactivewear_account_number.strip(),
            password=config.ssactivewear_api_key.strip(),
            product_url=config.ssactivewear_product_url,
            inventory_url=config.ssactivewear_inventory_url,
            timeout=config.supplier_request_timeout,
            transport=transport,
        )

    @classmethod
    def for_sanmar(
        cls, config: Settings | None = None, transport: httpx.BaseTransport | None = None
    ) -> "PromoStandardsClient":
        config = config or default_settings
        config.require("sanmar_promostandards_username", "sanmar_promostandards_password")
        return cls(
            account=config.sanmar_account(),
            password=config.sanmar_promostandards_password,
            product_url=None,
            inventory_url=config.sanmar_inventory_url,
            timeout=config.supplier_request_timeout,
            transport=transport,
            color_filter=COLOR_FILTER_PART_COLOR,
            normalize_id=lambda value: str(value or "").strip().upper(),
            supplier="SANMAR",
        )

    def _require_product_url(self) -> str:
        if not self._product_url:
            raise SupplierTransportError(f"No PromoStandards product endpoint configured for {self.supplier}")
        return self._product_url

    def get_product_xml(self, product_id: str) -> str:
        request = build_get_product_request(self._account, self._password, self._normalize_id(product_id))
        return self._soap.post(self._require_product_url(), "getProduct", build_envelope(request), "product")

    def get_product_sellable_xml(self, modified_since: datetime | None = None) -> str:
        request = build_get_product_sellable_request(self._account, self._password, modified_since)
        return self._soap.post(self._require_product_url(), "getProductSellable", build_envelope(request), "product")

    def get_inventory_levels_xml(self, product_id: str, inventory_filter: InventoryFilter | None = None) -> str:
        request = build_get_inventory_levels_request(
            self._account,
            self._password,
            self._normalize_id(product_id),
            inventory_filter,
            color_filter=self._color_filter,
        )
        return self._soap.post(self._inventory_url, "getInventoryLevels", build_envelope(request), "inventory")

    def fetch_product(self, product_id: str) -> ProductRecord:
        return parse_product_response(self.get_product_xml(product_id))

    def fetch_inventory(self, product_id: str, inventory_filter: InventoryFilter | None = None) -> ParsedInventory:
        xml = self.get_inventory_levels_xml(product_id, inventory_filter)
        return parse_inventory_response(xml, supplier_part_id=self._normalize_id(product_id))

    def fetch_sellable_product_ids(self, modified_since: datetime | None = None) -> list[str]:
        return parse_product_sellable_response(self.get_product_sellable_xml(modified_since))


class SanMarCatalogClient:
    """
    SanMar paged product catalog (GetProducts). Request field names are configurable because the
    service has renamed them across versions.
    """

    source_name = "sanmar_catalog"

    def __init__(self, config: Settings | None = None, transport: httpx.BaseTransport | None = None) -> None:
        config = config or default_settings
        config.require("sanmar_promostandards_username", "sanmar_promostandards_password")
        self._config = config
        self._soap = SoapTransport(timeout=config.supplier_request_timeout, transport=transport)

    def build_page_request(self, page: int, page_size: int, modified_since: datetime | None = None) -> dict[str, Any]:
        config = self._config
        body: dict[str, Any] = {
            config.sanmar_product_page_field: page,
            config.sanmar_product_page_size_field: page_size,
            config.sanmar_product_include_inactive_field: True,
            config.sanmar_product_include_discontinued_field: True,
        }
        if modified_since is not None:
            body[config.sanmar_product_modified_field] = modified_since
        if config.sanmar_product_request_key == "__root__":
            return body
        return {config.sanmar_product_request_key: body}

    def fetch_page(self, page: int, page_size: int, modified_since: datetime | None = None) -> dict[str, Any]:
        """Raw page payload (the operation's response element as a dict)."""
        config = self._config
        operation = config.sanmar_product_operation
        request = build_operation_request(operation, self.build_page_request(page, page_size, modified_since))
        header = build_sanmar_auth_header(config.sanmar_promostandards_username, config.sanmar_promostandards_password)
        xml = self._soap.post(config.sanmar_product_url, operation, build_envelope(request, header), "catalog")
        body = soap_body(xml, source=self.source_name)
        response = body.get(f"{operation}Response", body)
        return response if isinstance(response, dict) else {}
