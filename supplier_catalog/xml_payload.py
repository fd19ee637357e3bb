"""
XML payload -> nested dict conversion for SOAP responses.

Namespace prefixes are dropped, attributes are ignored, leaf elements become their trimmed text and an
element that occurs once becomes a bare value rather than a one-element list. That last rule mirrors
how suppliers' own tooling sees the payloads, so every caller must pass repeated sections through
`normalization.to_array` before iterating.
"""
from __future__ import annotations

from typing import Any

from lxml import etree

from supplier_catalog.exceptions import SupplierProtocolError

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True, remove_comments=True)


def local_name(tag: str) -> str:
    return etree.QName(tag).localname


def element_to_value(element: etree._Element) -> Any:
    children = [child for child in element if isinstance(child.tag, str)]
    text = (element.text or "").strip()
    if not children:
        return text

    result: dict[str, Any] = {}
    for child in children:
        name = local_name(child.tag)
        value = element_to_value(child)
        if name in result:
            existing = result[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[name] = [existing, value]
        else:
            result[name] = value
    if text:
        result["_"] = text
    return result


def parse_xml(payload: str | bytes, source: str | None = None) -> dict[str, Any]:
    """Parse an XML document into {root_name: value}."""
    raw = payload.encode("utf-8") if isinstance(payload, str) else payload
    if not raw or not raw.strip():
        raise SupplierProtocolError("Empty XML payload", source=source)
    try:
        root = etree.fromstring(raw, parser=_PARSER)
    except etree.XMLSyntaxError as exc:
        raise SupplierProtocolError(
            f"Malformed XML payload: {exc}",
            source=source,
            payload_excerpt=raw[:500].decode("utf-8", errors="replace"),
        ) from exc
    return {local_name(root.tag): element_to_value(root)}


def soap_body(payload: str | bytes, source: str | None = None) -> dict[str, Any]:
    """
    Body of a SOAP envelope. Raises SupplierProtocolError for a missing body or an embedded Fault.
    """
    document = parse_xml(payload, source=source)
    envelope = document.get("Envelope")
    body = envelope.get("Body") if isinstance(envelope, dict) else None
    if not isinstance(body, dict):
        raise SupplierProtocolError("SOAP envelope has no Body", source=source)

    fault = body.get("Fault")
    if fault is not None:
        code, reason = fault_details(fault)
        raw = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
        raise SupplierProtocolError(
            fault_message(code, reason),
            source=source,
            fault_code=code,
            payload_excerpt=raw,
        )
    return body


def fault_details(fault: Any) -> tuple[str | None, str]:
    """(faultcode, reason) of a SOAP 1.1 or 1.2 Fault value."""
    fault = fault if isinstance(fault, dict) else {"faultstring": fault}
    code = fault.get("faultcode") or _nested_text(fault, "Code", "Value")
    reason = fault.get("faultstring") or _nested_text(fault, "Reason", "Text") or "unknown fault"
    return (code if isinstance(code, str) else None), str(reason)


def fault_message(code: str | None, reason: str) -> str:
    return f"SOAP fault{f' {code}' if code else ''}: {reason}"


def find_soap_fault(payload: str | bytes) -> tuple[str | None, str] | None:
    """
    (faultcode, reason) when the envelope Body carries a Fault, else None. A payload that is not
    well-formed XML returns None here; parse_xml reports it with context when the caller parses it.
    """
    raw = payload.encode("utf-8") if isinstance(payload, str) else payload
    if not raw or not raw.strip():
        return None
    try:
        root = etree.fromstring(raw, parser=_PARSER)
    except etree.XMLSyntaxError:
        return None
    for body in root:
        if not isinstance(body.tag, str) or local_name(body.tag) != "Body":
            continue
        for child in body:
            if isinstance(child.tag, str) and local_name(child.tag) == "Fault":
                return fault_details(element_to_value(child))
    return None


def _nested_text(node: dict[str, Any], *path: str) -> str | None:
    current: Any = node
    for segment in path:
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
    return current if isinstance(current, str) and current else None
