"""Unit tests for PrivilegeCatalogService."""

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from privgate.domains.privileges.catalog import parse_status_filter
from privgate.domains.privileges.exceptions import (
    PrivilegeAlreadyExistsError,
    PrivilegeNotFoundError,
)
from privgate.domains.privileges.tests.conftest import _make_privilege_model
from privgate.schemas.privilege import PrivilegeCreate, PrivilegeUpdate


@pytest.mark.parametrize(
    "status, expected",
    [
        ("active", True),
        ("TRUE", True),
        (" inactive ", False),
        ("false", False),
        ("", None),
        (None, None),
        ("archived", None),
    ],
)
def test_parse_status_filter(status, expected):
    assert parse_status_filter(status) is expected


class TestList:
    @pytest.mark.asyncio
    async def test_paginates_by_name(self, catalog_service, db, fake_privilege_repo):
        for name in ("Refill", "Teleconsultation", "Messaging"):
            fake_privilege_repo.seed(_make_privilege_model(name))

        page = await catalog_service.list(db, page=1, page_size=2)

        assert [p.name for p in page.data] == ["Messaging", "Refill"]
        assert page.meta.total_records == 3
        assert page.meta.total_pages == 2

    @pytest.mark.asyncio
    async def test_search_and_status(self, catalog_service, db, fake_privilege_repo):
        fake_privilege_repo.seed(_make_privilege_model("Teleconsultation"))
        fake_privilege_repo.seed(_make_privilege_model("Video consult", is_active=False))
        fake_privilege_repo.seed(_make_privilege_model("Refill"))

        found = await catalog_service.list(db, search=" CONSULT ")
        inactive = await catalog_service.list(db, search="consult", status="inactive")

        assert {p.name for p in found.data} == {"Teleconsultation", "Video consult"}
        assert [p.name for p in inactive.data] == ["Video consult"]

    @pytest.mark.asyncio
    async def test_category_matches_privilege_type(
        self, catalog_service, db, fake_privilege_repo
    ):
        fake_privilege_repo.seed(_make_privilege_model("Teleconsultation"))
        fake_privilege_repo.seed(_make_privilege_model("Refill", privilege_type="Medication"))
        fake_privilege_repo.seed(_make_privilege_model("Messaging", privilege_type=None))

        page = await catalog_service.list(db, category=" medication ")

        assert [p.name for p in page.data] == ["Refill"]
        assert page.meta.total_records == 1

    @pytest.mark.asyncio
    async def test_types_are_distinct_and_skip_deleted(
        self, catalog_service, db, fake_privilege_repo
    ):
        fake_privilege_repo.seed(_make_privilege_model("Teleconsultation"))
        fake_privilege_repo.seed(_make_privilege_model("Video consult"))
        fake_privilege_repo.seed(_make_privilege_model("Refill", privilege_type="medication"))
        fake_privilege_repo.seed(
            _make_privilege_model("Lab", privilege_type="diagnostics", is_deleted=True)
        )
        fake_privilege_repo.seed(_make_privilege_model("Messaging", privilege_type=None))

        assert await catalog_service.list_types(db) == ["consultation", "medication"]

    @pytest.mark.asyncio
    async def test_deleted_privileges_are_hidden(self, catalog_service, db, fake_privilege_repo):
        fake_privilege_repo.seed(_make_privilege_model("Refill", is_deleted=True))

        page = await catalog_service.list(db)

        assert page.data == []
        assert page.meta.total_pages == 0


class TestCreate:
    @pytest.mark.asyncio
    async def test_create(self, catalog_service, db, ctx):
        privilege = await catalog_service.create(
            db, PrivilegeCreate(name="  Refill ", privilege_type="medication"), ctx
        )

        assert privilege.name == "Refill"
        assert privilege.is_active
        assert privilege.created_by == "test-actor"

    @pytest.mark.asyncio
    async def test_duplicate_name(self, catalog_service, db, ctx, fake_privilege_repo):
        fake_privilege_repo.seed(_make_privilege_model("Refill"))

        with pytest.raises(PrivilegeAlreadyExistsError):
            await catalog_service.create(db, PrivilegeCreate(name="Refill"), ctx)
        assert fake_privilege_repo.call_count("create") == 0

    @pytest.mark.asyncio
    async def test_unique_index_violation_is_a_duplicate(
        self, catalog_service, db, ctx, fake_privilege_repo
    ):
        fake_privilege_repo.write_error = IntegrityError(
            "INSERT INTO privilege", {}, Exception("uq_privilege_name_live")
        )

        with pytest.raises(PrivilegeAlreadyExistsError):
            await catalog_service.create(db, PrivilegeCreate(name="Refill"), ctx)
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_name_of_deleted_privilege_can_be_reused(
        self, catalog_service, db, ctx, fake_privilege_repo
    ):
        fake_privilege_repo.seed(_make_privilege_model("Refill", is_deleted=True))

        privilege = await catalog_service.create(db, PrivilegeCreate(name="Refill"), ctx)

        assert privilege.name == "Refill"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_partial_update(self, catalog_service, db, ctx, fake_privilege_repo):
        privilege = fake_privilege_repo.seed(_make_privilege_model("Refill"))

        updated = await catalog_service.update(
            db, privilege.id, PrivilegeUpdate(description="Monthly refill", name=None), ctx
        )

        assert updated.name == "Refill"
        assert updated.description == "Monthly refill"
        assert updated.modified_by == "test-actor"

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name(
        self, catalog_service, db, ctx, fake_privilege_repo
    ):
        fake_privilege_repo.seed(_make_privilege_model("Refill"))
        privilege = fake_privilege_repo.seed(_make_privilege_model("Messaging"))

        with pytest.raises(PrivilegeAlreadyExistsError):
            await catalog_service.update(db, privilege.id, PrivilegeUpdate(name="Refill"), ctx)

    @pytest.mark.asyncio
    async def test_rename_racing_a_create_is_a_duplicate(
        self, catalog_service, db, ctx, fake_privilege_repo
    ):
        privilege = fake_privilege_repo.seed(_make_privilege_model("Messaging"))
        fake_privilege_repo.write_error = IntegrityError(
            "UPDATE privilege", {}, Exception("uq_privilege_name_live")
        )

        with pytest.raises(PrivilegeAlreadyExistsError, match="Refill"):
            await catalog_service.update(db, privilege.id, PrivilegeUpdate(name="Refill"), ctx)
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_deactivate(self, catalog_service, db, ctx, fake_privilege_repo):
        privilege = fake_privilege_repo.seed(_make_privilege_model("Refill"))

        updated = await catalog_service.update(
            db, privilege.id, PrivilegeUpdate(is_active=False), ctx
        )

        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_missing(self, catalog_service, db, ctx):
        with pytest.raises(PrivilegeNotFoundError):
            await catalog_service.update(db, uuid4(), PrivilegeUpdate(name="x"), ctx)


class TestDelete:
    @pytest.mark.asyncio
    async def test_soft_delete(self, catalog_service, db, ctx, fake_privilege_repo):
        privilege = fake_privilege_repo.seed(_make_privilege_model("Refill"))

        deleted = await catalog_service.delete(db, privilege.id, ctx)

        assert deleted.is_deleted
        with pytest.raises(PrivilegeNotFoundError):
            await catalog_service.get(db, privilege.id)
