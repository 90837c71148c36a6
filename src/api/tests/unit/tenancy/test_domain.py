"""Unit tests for tenancy aggregates."""

from datetime import UTC, datetime, timedelta

from tenancy.domain.aggregates import PendingOrganization, Tenant

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def make_pending(**overrides) -> PendingOrganization:
    values = dict(
        organization_name="  Corner Liquors ",
        admin_name=" Sam Rivera ",
        email=" Owner@Corner.Example ",
        ttl=timedelta(hours=24),
        now=NOW,
    )
    values.update(overrides)
    return PendingOrganization.create(**values)


class TestPendingOrganization:
    def test_create_normalizes_input(self):
        pending = make_pending()

        assert pending.organization_name == "Corner Liquors"
        assert pending.admin_name == "Sam Rivera"
        assert pending.email == "owner@corner.example"
        assert pending.expires_at == NOW + timedelta(hours=24)

    def test_tokens_are_unique(self):
        assert make_pending().verification_token != make_pending().verification_token

    def test_expiry(self):
        pending = make_pending()

        assert pending.is_expired(NOW + timedelta(hours=23)) is False
        assert pending.is_expired(NOW + timedelta(hours=24)) is True

    def test_naive_expiry_is_read_as_utc(self):
        pending = make_pending()
        pending.expires_at = pending.expires_at.replace(tzinfo=None)

        assert pending.is_expired(NOW) is False
        assert pending.is_expired(NOW + timedelta(days=2)) is True


class TestTenant:
    def test_from_pending_keeps_the_id(self):
        pending = make_pending()

        tenant = Tenant.from_pending(pending, database_name="pos_tenant_x")

        assert tenant.id == pending.id
        assert tenant.name == "Corner Liquors"
        assert tenant.admin_email == "owner@corner.example"
        assert tenant.database_name == "pos_tenant_x"
        assert tenant.is_active is True

    def test_deactivate(self):
        tenant = Tenant.from_pending(make_pending(), database_name="pos_tenant_x")

        tenant.deactivate()

        assert tenant.is_active is False
