"""Tests for spine_orm.errors module."""

import pytest

from spine_orm.errors import (
    AdapterContractError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ForgeError,
    NoopQuery,
    RecordVerificationError,
    SpineOrmError,
    StageThreeError,
    UniquenessError,
    UnsupportedOperationError,
    UsageError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        """Create context with no fields set."""
        ctx = ErrorContext()
        assert ctx.model_identity is None
        assert ctx.method is None
        assert ctx.metadata == {}

    def test_to_dict_includes_set_fields(self):
        """to_dict includes only non-None fields."""
        ctx = ErrorContext(model_identity="user", method="update", metadata={"key": "value"})
        d = ctx.to_dict()
        assert d["model_identity"] == "user"
        assert d["method"] == "update"
        assert d["key"] == "value"
        assert "datastore" not in d


class TestSpineOrmError:
    """Test SpineOrmError base class."""

    def test_create_minimal_error(self):
        """Create error with just message."""
        err = SpineOrmError("Something failed")
        assert err.message == "Something failed"
        assert err.code == "E_INTERNAL"
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False

    def test_create_with_cause(self):
        """Create error with underlying cause."""
        cause = ValueError("Invalid value")
        err = SpineOrmError("Failed", cause=cause)
        assert err.cause is cause
        assert err.__cause__ is cause

    def test_with_context_fluent_api(self):
        """with_context sets known fields and stores the rest as metadata."""
        err = SpineOrmError("Failed").with_context(
            model_identity="user", datastore="default", request_id="abc"
        )
        assert err.context.model_identity == "user"
        assert err.context.datastore == "default"
        assert err.context.metadata["request_id"] == "abc"

    def test_to_dict(self):
        """Convert error to dictionary."""
        err = SpineOrmError("Failed", code="E_X", details="more").with_context(method="find")
        d = err.to_dict()
        assert d["error_type"] == "SpineOrmError"
        assert d["code"] == "E_X"
        assert d["message"] == "Failed"
        assert d["details"] == "more"
        assert d["retryable"] is False
        assert d["context"]["method"] == "find"

    def test_repr(self):
        assert repr(SpineOrmError("boom", code="E_BOOM")) == "SpineOrmError(E_BOOM: 'boom')"


class TestForgeErrors:
    """Test stage-2 compiler errors."""

    def test_forge_error_carries_code_and_details(self):
        err = ForgeError("E_INVALID_CRITERIA", "`limit` must be >= 0")
        assert err.code == "E_INVALID_CRITERIA"
        assert err.details == "`limit` must be >= 0"
        assert err.category == ErrorCategory.USAGE

    def test_noop_query(self):
        err = NoopQuery()
        assert err.code == "E_NOOP"
        assert isinstance(err, ForgeError)


class TestUsageError:
    """Test UsageError built from a ForgeError."""

    @pytest.mark.parametrize(
        "code,summary",
        [
            ("E_INVALID_CRITERIA", "Invalid criteria."),
            ("E_INVALID_VALUES_TO_SET", "Cannot perform this query with the provided values."),
            ("E_INVALID_POPULATES", "Invalid populate(s)."),
            ("E_INVALID_META", "Invalid meta."),
        ],
    )
    def test_message_format(self, code, summary):
        err = UsageError.from_forge_error(ForgeError(code, "bad thing"))
        assert err.code == code
        assert err.message == f"{summary}\nDetails:\n  bad thing"
        assert err.details == "bad thing"

    def test_stream_iteratee_summary(self):
        err = UsageError.from_forge_error(ForgeError("E_INVALID_STREAM_ITERATEE", "neither"))
        assert err.message.startswith("An iteratee function should be passed in to `stream()`")

    def test_cause_is_forge_error(self):
        forge = ForgeError("E_INVALID_CRITERIA", "x")
        err = UsageError.from_forge_error(forge)
        assert err.cause is forge

    def test_unknown_code_gets_generic_summary(self):
        err = UsageError.from_forge_error(ForgeError("E_SOMETHING", "x"))
        assert err.message.startswith("Invalid usage.")


class TestConfigErrors:
    """Test configuration errors."""

    def test_config_error_defaults(self):
        err = ConfigError("bad")
        assert err.code == "E_CONFIG"
        assert err.category == ErrorCategory.CONFIG

    def test_unsupported_operation(self):
        err = UnsupportedOperationError("user", "sum")
        assert isinstance(err, ConfigError)
        assert err.code == "E_UNSUPPORTED_OPERATION"
        assert "`user`" in err.message
        assert "`sum`" in err.message
        assert err.context.model_identity == "user"


class TestBoundaryErrors:
    """Test errors raised at or after the adapter boundary."""

    def test_codes(self):
        assert StageThreeError("x").code == "E_STAGE_THREE"
        assert AdapterContractError("x").code == "E_ADAPTER_CONTRACT"
        assert RecordVerificationError("x").code == "E_RECORD_VERIFICATION"

    def test_uniqueness_error(self):
        cause = RuntimeError("duplicate key")
        err = UniquenessError(
            "user",
            ["email"],
            footprint={"identity": "notUnique", "keys": ["email_address"]},
            cause=cause,
        )
        assert err.code == "E_UNIQUE"
        assert err.category == ErrorCategory.VALIDATION
        assert err.attr_names == ["email"]
        assert "`email`" in err.message
        assert err.__cause__ is cause
        d = err.to_dict()
        assert d["attr_names"] == ["email"]
        assert d["model_identity"] == "user"
        assert d["context"]["model_identity"] == "user"

    def test_all_errors_non_retryable(self):
        for err in (
            UsageError("x"),
            ConfigError("x"),
            StageThreeError("x"),
            AdapterContractError("x"),
            RecordVerificationError("x"),
            UniquenessError("user", ["a"]),
        ):
            assert err.retryable is False
