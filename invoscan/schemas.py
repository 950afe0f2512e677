"""Field contract for provider output and the validators that enforce it.

Both record kinds (invoice header and product line) are described as a
tuple of :class:`FieldSpec` and checked by the same :func:`validate_record`.
Validation is structural only: it checks presence and JSON type per field
and never applies business rules such as ``quantity > 0``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class FieldSpec:
    """One field the provider is asked to return."""

    key: str  # key in the provider's JSON object
    kind: str  # "string" or "number"
    required: bool = False
    attr: str = ""  # attribute on the raw record, defaults to key

    @property
    def target(self) -> str:
        return self.attr or self.key


LINE_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("name", "string", required=True),
    FieldSpec("catalog_number", "string", required=True),
    FieldSpec("barcode", "string"),
    FieldSpec("quantity", "number", required=True),
    FieldSpec("purchase_price", "number"),
    FieldSpec("sale_price", "number"),
    FieldSpec("total", "number", required=True, attr="line_total"),
    FieldSpec("description", "string"),
    FieldSpec("short_name", "string"),
)

HEADER_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("supplier_name", "string"),
    FieldSpec("invoice_number", "string"),
    FieldSpec("total_amount", "number"),
    FieldSpec("invoice_date", "string"),
    FieldSpec("payment_method", "string"),
)

# Header fields the provider may add next to the product list.
ENVELOPE_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("supplier_name", "string"),
    FieldSpec("invoice_number", "string"),
    FieldSpec("total_amount", "number"),
)


@dataclass
class RawExtractedLine:
    """A product line as returned by the provider, after type checks."""

    name: str
    catalog_number: str
    quantity: float
    line_total: float
    barcode: str | None = None
    purchase_price: float | None = None
    sale_price: float | None = None
    description: str | None = None
    short_name: str | None = None


@dataclass
class RawExtractedHeader:
    """Invoice-level fields as returned by the provider."""

    supplier_name: str | None = None
    invoice_number: str | None = None
    total_amount: float | None = None
    invoice_date: str | None = None
    payment_method: str | None = None


@dataclass
class RawProductExtraction:
    """The product envelope: all lines plus any header fields alongside them."""

    lines: list[RawExtractedLine] = field(default_factory=list)
    supplier_name: str | None = None
    invoice_number: str | None = None
    total_amount: float | None = None


@dataclass(frozen=True)
class FieldIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class ValidationError:
    """All field-level problems found in one provider response."""

    issues: list[FieldIssue]

    @property
    def fields(self) -> list[str]:
        return [issue.path for issue in self.issues]

    def __str__(self) -> str:
        return "; ".join(str(issue) for issue in self.issues)


@dataclass
class ValidationResult(Generic[T]):
    value: T | None = None
    error: ValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_empty_shape(raw: Any) -> bool:
    """True for null, non-object or empty-object provider output."""
    return not isinstance(raw, dict) or not raw


def _check_value(value: Any, kind: str) -> str | None:
    if kind == "string":
        if not isinstance(value, str):
            return f"expected string, got {type(value).__name__}"
        return None
    if kind == "number":
        # bool is an int subclass but never a valid amount
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"expected number, got {type(value).__name__}"
        if not math.isfinite(value):
            return "expected a finite number"
        return None
    raise ValueError(f"Unknown field kind: {kind!r}")


def validate_record(
    raw: Any, fields: tuple[FieldSpec, ...], path: str = ""
) -> tuple[dict[str, Any], list[FieldIssue]]:
    """Check ``raw`` against ``fields``.

    Returns the accepted values keyed by target attribute and the list of
    issues. Optional fields that are missing or ``null`` are left out of
    the values entirely; they are never defaulted.
    """
    prefix = f"{path}." if path else ""
    if not isinstance(raw, dict):
        return {}, [FieldIssue(path or "<root>", "expected an object")]

    values: dict[str, Any] = {}
    issues: list[FieldIssue] = []
    for spec in fields:
        value = raw.get(spec.key)
        if value is None:
            if spec.required:
                issues.append(FieldIssue(prefix + spec.key, "required field is missing"))
            continue
        problem = _check_value(value, spec.kind)
        if problem:
            issues.append(FieldIssue(prefix + spec.key, problem))
            continue
        values[spec.target] = float(value) if spec.kind == "number" else value
    return values, issues


def validate_line(raw: Any, path: str = "") -> ValidationResult[RawExtractedLine]:
    values, issues = validate_record(raw, LINE_FIELDS, path)
    if issues:
        return ValidationResult(error=ValidationError(issues))
    return ValidationResult(value=RawExtractedLine(**values))


def validate_header(raw: Any) -> ValidationResult[RawExtractedHeader]:
    values, issues = validate_record(raw, HEADER_FIELDS)
    if issues:
        return ValidationResult(error=ValidationError(issues))
    return ValidationResult(value=RawExtractedHeader(**values))


def validate_products(raw: Any) -> ValidationResult[RawProductExtraction]:
    """Validate the ``{"products": [...], ...}`` envelope and every line in it."""
    values, issues = validate_record(raw, ENVELOPE_FIELDS)
    if not isinstance(raw, dict):
        return ValidationResult(error=ValidationError(issues))

    items = raw.get("products")
    lines: list[RawExtractedLine] = []
    if items is None:
        issues.append(FieldIssue("products", "required field is missing"))
    elif not isinstance(items, list):
        issues.append(
            FieldIssue("products", f"expected array, got {type(items).__name__}")
        )
    else:
        for i, item in enumerate(items):
            result = validate_line(item, path=f"products[{i}]")
            if result.ok:
                lines.append(result.value)
            else:
                issues.extend(result.error.issues)

    if issues:
        return ValidationResult(error=ValidationError(issues))
    return ValidationResult(value=RawProductExtraction(lines=lines, **values))
