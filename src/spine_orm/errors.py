"""
Structured error types for the spine-orm query core.

Every failure the query core can report is a :class:`SpineOrmError`. Each
error carries a machine-checkable ``code`` (``E_INVALID_CRITERIA``,
``E_UNIQUE``, ...), a human ``message``, a :class:`ErrorCategory` used for
routing and alerting, and an :class:`ErrorContext` naming the model,
method and datastore involved.

Manifesto:
    - **Stable codes:** Callers branch on ``error.code``, never on message text
    - **Logical vocabulary:** Errors that cross the adapter boundary are
      re-expressed in attribute names, not column names
    - **No retries here:** Every error in this module is non-retryable;
      transient-fault retry belongs to the adapter or the caller
    - **Error chaining:** The adapter's original exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        SpineOrmError                             │
        │  (code, category, context, details, cause)                      │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ForgeError          UsageError           ConfigError            │
        │  (stage-2 codes)     (caller-facing)      (CONFIG)               │
        │       │                                        │                 │
        │  NoopQuery                           UnsupportedOperationError   │
        │  (E_NOOP)                                                        │
        │                                                                  │
        │  StageThreeError     AdapterContractError  UniquenessError       │
        │  (E_STAGE_THREE)     (E_ADAPTER_CONTRACT)  (E_UNIQUE)            │
        │                                                                  │
        │  RecordVerificationError                                         │
        │  (E_RECORD_VERIFICATION)                                         │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = UsageError.from_forge_error(
    ...     ForgeError("E_INVALID_CRITERIA", "`limit` must be >= 0"),
    ... )
    >>> err.code
    'E_INVALID_CRITERIA'
    >>> print(err.message)
    Invalid criteria.
    Details:
      `limit` must be >= 0

Guardrails:
    ❌ DON'T: Surface ``NoopQuery`` to callers
    ✅ DO: Synthesize the empty result for the method instead

    ❌ DON'T: Let adapter column names leak into user-facing errors
    ✅ DO: Map footprint keys back to attribute names (see ``UniquenessError``)

Tags:
    error-handling, exception-hierarchy, error-codes, spine-orm

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    USAGE = "USAGE"               # Malformed request from the caller
    VALIDATION = "VALIDATION"     # Constraint violations, schema drift
    CONFIG = "CONFIG"             # Registry / adapter misconfiguration
    INTERNAL = "INTERNAL"         # Contract violations, bugs


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        model_identity: Identity of the logical model being queried
        method: Query method (``update``, ``find``, ...)
        datastore: Name of the datastore the adapter was bound to
        metadata: Additional key-value pairs
    """

    model_identity: str | None = None
    method: str | None = None
    datastore: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["model_identity", "method", "datastore"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SpineOrmError(Exception):
    """
    Base exception for all spine-orm errors.

    Subclasses set ``default_code`` and ``default_category``. ``details``
    holds the short, caller-facing explanation that usage errors embed in
    their message.
    """

    default_code: str = "E_INTERNAL"
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        category: ErrorCategory | None = None,
        details: str | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.category = category or self.default_category
        self.retryable = self.default_retryable
        self.details = details
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpineOrmError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.details:
            result["details"] = self.details
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.code}: {self.message!r})"


# =============================================================================
# QUERY FORGING
# =============================================================================


class ForgeError(SpineOrmError):
    """
    Raised by the stage-2 compiler.

    Never shown to callers directly: the operation that called the compiler
    turns it into a :class:`UsageError` (or, for ``E_NOOP``, into an empty
    result).
    """

    default_category = ErrorCategory.USAGE

    def __init__(self, code: str, details: str, **kwargs: Any):
        super().__init__(details, code=code, details=details, **kwargs)


class NoopQuery(ForgeError):
    """The query can be proven to match nothing; the adapter is not consulted."""

    def __init__(self, details: str = "Query would match no records."):
        super().__init__("E_NOOP", details)


# Headline used for each usage error code, followed by the forge details.
_USAGE_SUMMARIES = {
    "E_INVALID_CRITERIA": "Invalid criteria.",
    "E_INVALID_VALUES_TO_SET": "Cannot perform this query with the provided values.",
    "E_INVALID_NEW_RECORDS": "Invalid new record(s).",
    "E_INVALID_POPULATES": "Invalid populate(s).",
    "E_INVALID_STREAM_ITERATEE": (
        "An iteratee function should be passed in to `stream()` via either "
        "`each_record` or `each_batch` -- but not both."
    ),
    "E_INVALID_NUMERIC_ATTR_NAME": "Invalid numeric attribute name.",
    "E_INVALID_META": "Invalid meta.",
}


class UsageError(SpineOrmError):
    """The caller supplied a malformed request."""

    default_code = "E_USAGE"
    default_category = ErrorCategory.USAGE

    @classmethod
    def from_forge_error(cls, error: ForgeError, **kwargs: Any) -> UsageError:
        summary = _USAGE_SUMMARIES.get(error.code, "Invalid usage.")
        message = f"{summary}\nDetails:\n  {error.details}"
        return cls(
            message,
            code=error.code,
            details=error.details,
            context=error.context,
            cause=error,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigError(SpineOrmError):
    """Model registry or datastore misconfiguration. Never retryable."""

    default_code = "E_CONFIG"
    default_category = ErrorCategory.CONFIG


class UnsupportedOperationError(ConfigError):
    """The bound adapter does not implement the requested method."""

    default_code = "E_UNSUPPORTED_OPERATION"

    def __init__(self, model_identity: str, method: str):
        self.model_identity = model_identity
        self.method = method
        super().__init__(
            f"Cannot complete query: The adapter used by this model "
            f"(`{model_identity}`) doesn't support the `{method}` method.",
            context=ErrorContext(model_identity=model_identity, method=method),
        )


# =============================================================================
# PHYSICAL QUERY / ADAPTER BOUNDARY
# =============================================================================


class StageThreeError(SpineOrmError):
    """A stage-2 query could not be bound to the physical schema."""

    default_code = "E_STAGE_THREE"


class AdapterContractError(SpineOrmError):
    """The adapter answered with a value that violates its contract."""

    default_code = "E_ADAPTER_CONTRACT"


class UniquenessError(SpineOrmError):
    """
    A uniqueness constraint would be violated.

    Built from the adapter's ``notUnique`` footprint: ``attr_names`` holds the
    logical attribute names, ``footprint`` the adapter's original payload.
    """

    default_code = "E_UNIQUE"
    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        model_identity: str,
        attr_names: list[str],
        *,
        footprint: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.model_identity = model_identity
        self.attr_names = attr_names
        self.footprint = footprint or {}
        names = ", ".join(f"`{name}`" for name in attr_names) or "(unknown)"
        super().__init__(
            "Would violate uniqueness constraint-- a record already exists "
            f"with conflicting value(s) for {names}.",
            details=f"model `{model_identity}`, attribute(s) {names}",
            **kwargs,
        )
        self.with_context(model_identity=model_identity)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["attr_names"] = list(self.attr_names)
        result["model_identity"] = self.model_identity
        return result


class RecordVerificationError(SpineOrmError):
    """A record from the adapter does not match the logical schema."""

    default_code = "E_RECORD_VERIFICATION"
    default_category = ErrorCategory.VALIDATION


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpineOrmError",
    "ForgeError",
    "NoopQuery",
    "UsageError",
    "ConfigError",
    "UnsupportedOperationError",
    "StageThreeError",
    "AdapterContractError",
    "UniquenessError",
    "RecordVerificationError",
]
