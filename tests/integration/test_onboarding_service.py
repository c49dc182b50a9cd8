"""
Integration tests for third-party onboarding.
"""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filegate.core.exceptions import (
    ContainerConflict,
    InvalidInputError,
    ResourceNotFoundError,
)
from filegate.core.filters import and_, eq
from filegate.core.table_store import EntityExistsError, TableStore
from filegate.features.tenants.service import onboarding_service
from filegate.models import THIRD_PARTY_PARTITION, TenantStatus, ThirdParty
from filegate.schemas.tenant import ThirdPartyCreate, ThirdPartyUpdate
from tests.factories import ThirdPartyFactory


@pytest.mark.integration
class TestCreateThirdParty:
    """Test OnboardingService.create_third_party."""

    async def test_create(self, db_session, mock_celery):
        party = await onboarding_service.create_third_party(
            db_session,
            ThirdPartyCreate(company_name="Acme Corp", contact_email="ops@acme.test", automation_enabled=True),
        )

        assert party.row_key.startswith("tp-")
        assert len(party.row_key) == 10
        assert party.container_name == "sft-acme-corp"
        assert party.lifecycle_status is TenantStatus.PROVISIONING
        assert party.automation_enabled is True
        assert party.external_identity_ref is None
        assert mock_celery == [("provision_tenant", {"third_party_id": party.row_key})]

    @pytest.mark.parametrize("name, email", [("", "ops@acme.test"), ("   ", "ops@acme.test"), ("Acme", "")])
    async def test_blank_fields_rejected(self, db_session, mock_celery, name, email):
        with pytest.raises(InvalidInputError) as exc_info:
            await onboarding_service.create_third_party(
                db_session, ThirdPartyCreate(company_name=name, contact_email=email)
            )

        assert exc_info.value.code == "INVALID_INPUT"
        assert mock_celery == []

    async def test_name_without_usable_characters(self, db_session, mock_celery):
        with pytest.raises(InvalidInputError):
            await onboarding_service.create_third_party(
                db_session, ThirdPartyCreate(company_name="!!!", contact_email="ops@x.test")
            )

    @pytest.mark.parametrize("status", [
        TenantStatus.PROVISIONING,
        TenantStatus.ACTIVE,
        TenantStatus.DEPROVISIONING,
    ])
    async def test_container_held_by_live_tenant(self, db_session, mock_celery, status):
        await ThirdPartyFactory.create(db_session, container_name="sft-acme", status=status)

        with pytest.raises(ContainerConflict) as exc_info:
            await onboarding_service.create_third_party(
                db_session, ThirdPartyCreate(company_name="ACME", contact_email="ops@acme.test")
            )

        assert exc_info.value.code == "CONTAINER_EXISTS"
        assert mock_celery == []

    async def test_container_of_inactive_tenant_can_be_reused(self, db_session, mock_celery):
        await ThirdPartyFactory.create(db_session, container_name="sft-acme", status=TenantStatus.INACTIVE)

        party = await onboarding_service.create_third_party(
            db_session, ThirdPartyCreate(company_name="Acme", contact_email="ops@acme.test")
        )

        assert party.container_name == "sft-acme"


@pytest.mark.integration
class TestContainerClaim:
    """One live record per container, even under concurrent requests."""

    async def test_concurrent_creates_claim_container_once(self, test_db_engine, mock_celery):
        session_factory = async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)

        async def create():
            async with session_factory() as session:
                party = await onboarding_service.create_third_party(
                    session, ThirdPartyCreate(company_name="Acme", contact_email="ops@acme.test")
                )
                return party.row_key

        results = await asyncio.gather(create(), create(), return_exceptions=True)

        created = [r for r in results if isinstance(r, str)]
        conflicts = [r for r in results if isinstance(r, ContainerConflict)]
        assert len(created) == 1
        assert len(conflicts) == 1
        assert mock_celery == [("provision_tenant", {"third_party_id": created[0]})]

        async with session_factory() as session:
            store = TableStore(session, ThirdParty)
            rows = [
                party async for party in store.query(and_(
                    eq("partition_key", THIRD_PARTY_PARTITION),
                    eq("container_name", "sft-acme"),
                ))
            ]
        assert [party.row_key for party in rows] == created

    async def test_store_rejects_second_live_record(self, db_session):
        await ThirdPartyFactory.create(db_session, container_name="sft-acme")

        with pytest.raises(EntityExistsError):
            await TableStore(db_session, ThirdParty).insert(ThirdParty(
                partition_key=THIRD_PARTY_PARTITION,
                row_key="tp-abcdef0",
                company_name="Acme",
                contact_email="ops@acme.test",
                container_name="sft-acme",
                status=TenantStatus.PROVISIONING.value,
            ))

    async def test_retired_records_do_not_hold_the_claim(self, db_session):
        for row_key in ("tp-0000001", "tp-0000002"):
            await ThirdPartyFactory.create(
                db_session, row_key=row_key, container_name="sft-acme", status=TenantStatus.INACTIVE
            )

        party = await ThirdPartyFactory.create(db_session, container_name="sft-acme")

        assert party.is_active


@pytest.mark.integration
class TestReadAndUpdate:
    """Test get/list/update."""

    async def test_get_missing(self, db_session):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await onboarding_service.get_third_party(db_session, "tp-missing")

        assert exc_info.value.code == "NOT_FOUND"

    async def test_list_respects_top(self, db_session):
        for _ in range(4):
            await ThirdPartyFactory.create(db_session)

        assert len(await onboarding_service.list_third_parties(db_session, top=3)) == 3
        assert len(await onboarding_service.list_third_parties(db_session)) == 4

    async def test_update_name_and_email_only(self, db_session):
        party = await ThirdPartyFactory.create(
            db_session, company_name="Old", container_name="sft-old", automation_enabled=False
        )

        updated = await onboarding_service.update_third_party(
            db_session,
            party.row_key,
            ThirdPartyUpdate(company_name="New Name", contact_email="new@example.com"),
        )

        assert updated.company_name == "New Name"
        assert updated.contact_email == "new@example.com"
        assert updated.container_name == "sft-old"
        assert updated.automation_enabled is False

    async def test_update_rejects_blank_name(self, db_session):
        party = await ThirdPartyFactory.create(db_session)

        with pytest.raises(InvalidInputError):
            await onboarding_service.update_third_party(
                db_session, party.row_key, ThirdPartyUpdate(company_name=" ")
            )


@pytest.mark.integration
class TestRequestDeprovisioning:
    """Test OnboardingService.request_deprovisioning."""

    async def test_active_moves_to_deprovisioning(self, db_session, mock_celery):
        party = await ThirdPartyFactory.create(db_session)

        result = await onboarding_service.request_deprovisioning(db_session, party.row_key)

        assert result.lifecycle_status is TenantStatus.DEPROVISIONING
        assert mock_celery == [("deprovision_tenant", {"third_party_id": party.row_key})]

    @pytest.mark.parametrize("status", [
        TenantStatus.PROVISIONING,
        TenantStatus.DEPROVISIONING,
        TenantStatus.INACTIVE,
    ])
    async def test_other_states_are_no_ops(self, db_session, mock_celery, status):
        party = await ThirdPartyFactory.create(db_session, status=status)

        result = await onboarding_service.request_deprovisioning(db_session, party.row_key)

        assert result.lifecycle_status is status
        assert mock_celery == []

    async def test_missing(self, db_session, mock_celery):
        with pytest.raises(ResourceNotFoundError):
            await onboarding_service.request_deprovisioning(db_session, "tp-missing")
