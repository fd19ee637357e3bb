"""
Catalog ingestion exception classes

Structured errors shared by the supplier clients, parsers, importers and the fallback orchestrator.
"""
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity level"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CatalogError(Exception):
    """
    Base exception for all catalog ingestion errors

    Attributes:
        message: error message
        error_code: machine readable code
        severity: error severity
        context: extra diagnostic context
        recoverable: whether a different source or a later run may succeed
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity
        self.context = context or {}
        self.recoverable = recoverable
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "recoverable": self.recoverable
        }


class ConfigurationError(CatalogError):
    """
    Missing or invalid configuration. Fatal at startup.

    Attributes:
        missing: names of the settings that were empty
    """

    def __init__(self, message: str, missing: Optional[List[str]] = None, **kwargs):
        context = {"missing": list(missing or [])}
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            severity=ErrorSeverity.CRITICAL,
            context=context,
            recoverable=False
        )
        self.missing = list(missing or [])


class SupplierTransportError(CatalogError):
    """
    Network failure or non-2xx response from a supplier endpoint

    Attributes:
        status_code: HTTP status code
        url: request URL
        response_body: response body kept for diagnostics
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        response_body: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        recoverable: bool = True,
        **kwargs
    ):
        context = {
            "status_code": status_code,
            "url": url,
            "response_body": response_body
        }
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="TRANSPORT_ERROR",
            severity=severity,
            context=context,
            recoverable=recoverable
        )
        self.status_code = status_code
        self.url = url
        self.response_body = response_body


class SupplierTimeoutError(SupplierTransportError):
    """
    Request cancelled after the configured timeout
    """

    def __init__(
        self,
        service: str,
        timeout_seconds: float,
        url: Optional[str] = None,
        **kwargs
    ):
        timeout_ms = int(round(timeout_seconds * 1000))
        super().__init__(
            f"request to {service} exceeded {timeout_ms}ms",
            url=url,
            service=service,
            timeout_ms=timeout_ms,
            **kwargs
        )
        self.error_code = "TIMEOUT_ERROR"
        self.service = service
        self.timeout_seconds = timeout_seconds


class SupplierProtocolError(CatalogError):
    """
    Malformed or unexpected XML/JSON payload, SOAP fault or blocking service message.
    Not retryable against the same source.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        fault_code: Optional[str] = None,
        payload_excerpt: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        **kwargs
    ):
        context = {
            "source": source,
            "fault_code": fault_code,
            "payload_excerpt": payload_excerpt[:500] if payload_excerpt else None
        }
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="PROTOCOL_ERROR",
            severity=severity,
            context=context,
            recoverable=False
        )
        self.source = source
        self.fault_code = fault_code


class RowValidationError(CatalogError):
    """
    Bulk file row that cannot be keyed. The row is skipped, the run continues.
    """

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        field: Optional[str] = None,
        **kwargs
    ):
        context = {"row_number": row_number, "field": field}
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            severity=ErrorSeverity.LOW,
            context=context,
            recoverable=False
        )
        self.row_number = row_number
        self.field = field


class PersistenceError(CatalogError):
    """
    Storage write failure for one product

    Attributes:
        supplier_part_id: product being written
        operation: create, update, replace_children, upsert_inventory, commit
    """

    def __init__(
        self,
        message: str,
        supplier_part_id: Optional[str] = None,
        operation: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        **kwargs
    ):
        context = {"supplier_part_id": supplier_part_id, "operation": operation}
        context.update(kwargs)
        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            severity=severity,
            context=context,
            recoverable=False
        )
        self.supplier_part_id = supplier_part_id
        self.operation = operation


class SupplierFallbackError(CatalogError):
    """
    Every source failed. Carries each underlying error in attempt order.
    """

    def __init__(self, subject: str, causes: List[tuple[str, Exception]]):
        labels = " ".join(
            f"{index}) {label}: {error}" for index, (label, error) in enumerate(causes, start=1)
        )
        super().__init__(
            message=f"All supplier sources failed for {subject}: {labels}",
            error_code="FALLBACK_EXHAUSTED",
            severity=ErrorSeverity.HIGH,
            context={
                "subject": subject,
                "causes": [{"source": label, "error": str(error)} for label, error in causes],
            },
            recoverable=True
        )
        self.subject = subject
        self.causes = causes
