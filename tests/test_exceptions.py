"""Unit tests for exceptions module."""

import pytest

from erc8004.core.exceptions import (
    AbiDecodingError,
    ConfigurationError,
    ERC8004Error,
    IPFSError,
    NetworkError,
    ReceiptError,
    RegistryRejectionError,
    SigningError,
    TransactionTimeoutError,
    ValidationError,
)


class TestERC8004Error:
    """Tests for base exception."""

    def test_basic_error(self) -> None:
        """Test basic error creation."""
        error = ERC8004Error("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details == {}

    def test_error_with_details(self) -> None:
        """Test error with details dict."""
        error = ERC8004Error("RPC failed", details={"url": "http://127.0.0.1:8545"})

        assert "RPC failed" in str(error)
        assert "Details:" in str(error)
        assert error.details["url"] == "http://127.0.0.1:8545"

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("missing rpc"),
            ValidationError("bad score", field="score"),
            SigningError("no signer"),
            NetworkError("timeout"),
            RegistryRejectionError("reverted"),
            ReceiptError("no event"),
            IPFSError("upload failed"),
            AbiDecodingError("bad data"),
        ],
    )
    def test_is_catchable_as_base_type(self, error) -> None:
        """Test that specific errors can be caught as base type."""
        with pytest.raises(ERC8004Error):
            raise error


class TestValidationError:
    def test_field_is_kept(self) -> None:
        error = ValidationError("score MUST be between 0 and 100, got 101", field="score")
        assert error.field == "score"
        assert str(error) == "score MUST be between 0 and 100, got 101"


class TestSigningError:
    def test_signer_address_is_kept(self) -> None:
        error = SigningError("device disconnected", signer_address="0xabc")
        assert error.signer_address == "0xabc"


class TestNetworkError:
    """Tests for NetworkError."""

    def test_rate_limited(self) -> None:
        error = NetworkError("Too many requests", status_code=429)
        assert error.is_rate_limited()
        assert not error.is_server_error()

    def test_server_error(self) -> None:
        error = NetworkError("Bad gateway", status_code=502, url="https://rpc.example")
        assert error.is_server_error()
        assert error.url == "https://rpc.example"

    def test_transport_error_has_no_status(self) -> None:
        error = NetworkError("connection refused")
        assert not error.is_rate_limited()
        assert not error.is_server_error()


class TestTransactionTimeoutError:
    def test_is_network_error(self) -> None:
        error = TransactionTimeoutError("not mined", tx_hash="0xdead", timeout_seconds=120.0)

        assert isinstance(error, NetworkError)
        assert error.tx_hash == "0xdead"
        assert error.timeout_seconds == 120.0


class TestRegistryRejectionError:
    """Tests for RegistryRejectionError."""

    def test_str_includes_function(self) -> None:
        error = RegistryRejectionError(
            "Execution reverted: index mismatch", reason="index mismatch", function="giveFeedback"
        )
        assert str(error) == "[giveFeedback] Execution reverted: index mismatch"
        assert error.reason == "index mismatch"

    def test_str_without_function(self) -> None:
        error = RegistryRejectionError("Execution reverted", tx_hash="0xbeef")
        assert str(error) == "Execution reverted"
        assert error.tx_hash == "0xbeef"


class TestIPFSError:
    def test_str_includes_provider(self) -> None:
        error = IPFSError("401 Unauthorized", provider="pinata")
        assert str(error) == "[ipfs:pinata] 401 Unauthorized"

    def test_default_provider(self) -> None:
        assert IPFSError("boom").provider == "unknown"
