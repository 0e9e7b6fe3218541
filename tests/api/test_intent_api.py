"""
Tests for the intent routers.

Managers are replaced through ``app.dependency_overrides`` so the HTTP layer
is exercised without any outbound calls.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from yieldpilot.api.dependencies import (
    get_approval_manager,
    get_bridge_manager,
    get_earn_manager,
    get_swap_manager,
)
from yieldpilot.core.errors import AllServicesUnavailableError, SubmissionError, VenueUnavailableError
from yieldpilot.core.workflow import WorkflowStage, WorkflowStatus, WorkflowTrace
from yieldpilot.main import app

WALLET = "0x742d35Cc6634C0532925a3b844Bc9e7595f1e9A6"
SPENDER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"


def quoted(intent):
    trace = WorkflowTrace(intent)
    trace.advance(WorkflowStage.BALANCE_CHECKED)
    trace.details["chain"] = "base"
    return trace.quoted()


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def earn():
    manager = MagicMock()
    manager.plan = AsyncMock(return_value=quoted("plan"))
    manager.deposit = AsyncMock(return_value=quoted("deposit"))
    manager.withdraw = AsyncMock(return_value=quoted("withdraw"))
    return manager


@pytest.fixture
def swaps():
    manager = MagicMock()
    manager.swap = AsyncMock(return_value=quoted("swap"))
    return manager


@pytest.fixture
def bridges():
    manager = MagicMock()
    manager.bridge = AsyncMock(return_value=WorkflowTrace("bridge").reject("same_chain", "Source and destination are both base"))
    return manager


@pytest.fixture
def approvals():
    manager = MagicMock()
    manager.review = AsyncMock(return_value=quoted("review_approvals"))
    manager.revoke = AsyncMock(return_value=quoted("revoke_approval"))
    return manager


@pytest.fixture
def client(earn, swaps, bridges, approvals):
    app.dependency_overrides[get_earn_manager] = lambda: earn
    app.dependency_overrides[get_swap_manager] = lambda: swaps
    app.dependency_overrides[get_bridge_manager] = lambda: bridges
    app.dependency_overrides[get_approval_manager] = lambda: approvals
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Endpoints
# =============================================================================

class TestEarnEndpoints:

    def test_plan(self, client, earn):
        resp = client.post("/earn/plan", json={"asset": "USDC"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == WorkflowStatus.QUOTED.value
        assert body["intent"] == "plan"
        assert body["stages"] == ["validating", "balance_checked", "quoted"]
        earn.plan.assert_awaited_once_with("USDC", None, None, None, wallet_address=None)

    def test_deposit(self, client, earn):
        resp = client.post(
            "/earn/deposit",
            json={"asset": "USDC", "amount": "50", "chains": ["base"], "walletAddress": WALLET, "execute": False},
        )
        assert resp.status_code == 200
        earn.deposit.assert_awaited_once_with(
            "USDC", "50", ["base"], None, wallet_address=WALLET, execute=False
        )

    def test_withdraw_defaults(self, client, earn):
        resp = client.post("/earn/withdraw", json={"asset": "USDC", "wallet_address": WALLET})
        assert resp.status_code == 200
        earn.withdraw.assert_awaited_once_with(
            "USDC", "all", "base", "aave-v3", wallet_address=WALLET, pool_symbol=None, execute=True
        )

    def test_missing_field(self, client):
        resp = client.post("/earn/deposit", json={"asset": "USDC"})
        assert resp.status_code == 422


class TestSwapAndBridgeEndpoints:

    def test_swap(self, client, swaps):
        resp = client.post(
            "/swap",
            json={"fromToken": "USDC", "toToken": "WETH", "amount": "100", "walletAddress": WALLET},
        )
        assert resp.status_code == 200
        swaps.swap.assert_awaited_once_with(
            "USDC", "WETH", "100", "base", wallet_address=WALLET, execute=False, slippage_bps=None
        )

    def test_bridge_rejection_is_a_result(self, client):
        resp = client.post(
            "/bridge",
            json={"fromToken": "USDC", "amount": "1", "fromChain": "base", "toChain": "base", "walletAddress": WALLET},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "rejected"
        assert body["rejection"]["code"] == "same_chain"


class TestApprovalEndpoints:

    def test_review(self, client, approvals):
        resp = client.post("/approvals/review", json={"token": "USDC", "walletAddress": WALLET})
        assert resp.status_code == 200
        assert resp.json()["intent"] == "review_approvals"
        approvals.review.assert_awaited_once_with("USDC", "base", wallet_address=WALLET, spenders=None)

    def test_revoke(self, client, approvals):
        resp = client.post(
            "/approvals/revoke",
            json={"token": "USDC", "spender": SPENDER, "chain": "arbitrum", "walletAddress": WALLET},
        )
        assert resp.status_code == 200
        approvals.revoke.assert_awaited_once_with("USDC", SPENDER, "arbitrum", wallet_address=WALLET, execute=True)

    def test_revoke_requires_spender(self, client):
        resp = client.post("/approvals/revoke", json={"token": "USDC", "walletAddress": WALLET})
        assert resp.status_code == 422


class TestErrorMapping:

    def test_quote_outage_is_502(self, client, swaps):
        swaps.swap.side_effect = AllServicesUnavailableError("All routing services are unavailable")
        resp = client.post(
            "/swap",
            json={"fromToken": "USDC", "toToken": "WETH", "amount": "1", "walletAddress": WALLET},
        )
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "all_services_unavailable"

    def test_venue_error_is_422(self, client, earn):
        earn.withdraw.side_effect = VenueUnavailableError("polygon", "morpho-v1")
        resp = client.post("/earn/withdraw", json={"asset": "USDC", "walletAddress": WALLET})
        assert resp.status_code == 422
        assert resp.json()["error"]["category"] == "venue"

    def test_submission_error_is_500(self, client, earn):
        earn.deposit.side_effect = SubmissionError("nonce too low", action="supply", chain="base", venue="aave-v3")
        resp = client.post(
            "/earn/deposit", json={"asset": "USDC", "amount": "1", "walletAddress": WALLET}
        )
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"]["recoverable"] is False
        assert body["error"]["details"]["action"] == "supply"

    def test_stray_transport_failure_is_503(self, earn):
        earn.plan.side_effect = ConnectionError("Connection refused")
        app.dependency_overrides[get_earn_manager] = lambda: earn
        try:
            resp = TestClient(app, raise_server_exceptions=False).post("/earn/plan", json={"asset": "USDC"})
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 503
        body = resp.json()
        assert body["error"]["category"] == "network"
        assert body["error"]["code"] == "upstream_unavailable"

    def test_unclassified_exception_is_500(self, earn):
        earn.plan.side_effect = ValueError("unexpected shape")
        app.dependency_overrides[get_earn_manager] = lambda: earn
        try:
            resp = TestClient(app, raise_server_exceptions=False).post("/earn/plan", json={"asset": "USDC"})
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 500
        assert resp.json()["error"]["recoverable"] is False
        assert resp.json()["message"] == "unexpected shape"


class TestRequestId:

    def test_generated_when_absent(self, client):
        resp = client.get("/healthz")
        assert len(resp.headers["x-request-id"]) == 8

    def test_echoed_when_given(self, client):
        resp = client.get("/healthz", headers={"X-Request-ID": "abc123"})
        assert resp.headers["x-request-id"] == "abc123"


class TestHealth:

    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        body = resp.json()
        assert body["protocols"] == ["aave-v3", "compound-v3", "morpho-v1"]
        assert body["status"] in ("healthy", "degraded")
