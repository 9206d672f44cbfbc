"""Tests for the access gate decision table."""

import pytest

from mvp_builder.core.config import AccessConfig
from mvp_builder.domain.models.customer import Customer
from mvp_builder.services.access_gate import AccessGate, AccessState


def make_customer(**overrides) -> Customer:
    data = {
        "customer_id": "cust-1",
        "plan_name": "Pro",
        "subscription_status": "active",
        "actual_attempts": 10,
        "used_attempt": 2,
    }
    data.update(overrides)
    return Customer(**data)


@pytest.fixture
def gate():
    return AccessGate(AccessConfig(), environment="production")


@pytest.fixture
def dev_gate():
    return AccessGate(AccessConfig(), environment="development")


class TestExemptAndAnonymous:
    """Tests for exempt routes and visitors without a customer id."""

    @pytest.mark.parametrize("path", ["/admin", "/admin/customers", "/terms"])
    def test_exempt_paths(self, gate, path):
        decision = gate.decide(path, customer_id=None)

        assert decision.state == AccessState.EXEMPT
        assert decision.allowed

    def test_terms_is_exact_match(self, gate):
        """Only /terms itself is exempt, not paths below it."""
        assert not gate.is_exempt("/terms/extra")

    def test_anonymous_requires_access(self, gate):
        decision = gate.decide("/", customer_id=None)

        assert decision.state == AccessState.ACCESS_REQUIRED
        assert not decision.allowed
        assert decision.title == "Access Required"

    def test_anonymous_dev_bypass(self, dev_gate):
        decision = dev_gate.decide("/", customer_id="")

        assert decision.state == AccessState.DEV_BYPASS
        assert decision.allowed
        assert decision.banner

    def test_dev_bypass_can_be_disabled(self):
        gate = AccessGate(AccessConfig(dev_bypass=False), environment="development")

        assert gate.decide("/", customer_id=None).state == AccessState.ACCESS_REQUIRED


class TestCustomerStates:
    """Tests for decisions about known and unknown customers."""

    def test_unknown_customer(self, gate):
        decision = gate.decide("/", customer_id="ghost", customer=None)

        assert decision.state == AccessState.NOT_FOUND
        assert "ghost" in decision.message

    def test_lookup_failure_is_not_found(self, gate):
        decision = gate.decide("/", "cust-1", make_customer(), lookup_failed=True)

        assert decision.state == AccessState.NOT_FOUND

    def test_active_paid_customer(self, gate):
        decision = gate.decide("/", "cust-1", make_customer())

        assert decision.state == AccessState.ALLOWED
        assert decision.banner is None
        assert decision.remaining_attempts == 8

    def test_active_free_customer_gets_banner(self, gate):
        customer = make_customer(plan_name="Free", actual_attempts=3, used_attempt=1)

        decision = gate.decide("/", "cust-1", customer)

        assert decision.allowed
        assert decision.banner == "2 of 3 uses remaining"

    def test_expired_requires_renewal(self, gate):
        decision = gate.decide("/", "cust-1", make_customer(subscription_status="expired"))

        assert decision.state == AccessState.RENEWAL_REQUIRED
        assert not decision.allowed

    @pytest.mark.parametrize("status", ["paused", "cancelled", "frozen"])
    def test_other_statuses_require_upgrade(self, gate, status):
        decision = gate.decide("/", "cust-1", make_customer(subscription_status=status))

        assert decision.state == AccessState.UPGRADE_REQUIRED
        assert status in decision.message

    def test_free_plan_upgrade_message(self, gate):
        customer = make_customer(
            plan_name="Free", subscription_status="cancelled", actual_attempts=3, used_attempt=3
        )

        decision = gate.decide("/", "cust-1", customer)

        assert decision.message.startswith("You've used all 3 free attempts")

    def test_remaining_attempts_do_not_block(self, gate):
        """An active customer with no attempts left is still allowed."""
        customer = make_customer(actual_attempts=3, used_attempt=3)

        decision = gate.decide("/", "cust-1", customer)

        assert decision.allowed
        assert decision.remaining_attempts == 0
