"""Tests for ColumnService batch operations."""

from uuid import uuid4

import pytest

from src.schemaplane.core.exceptions import (
    ConflictError,
    ExecutionError,
    NotFoundError,
    SchemaValidationError,
)
from src.schemaplane.core.security import RejectionReason
from src.schemaplane.models.catalog import ColumnDefinition, QualifiedName
from src.schemaplane.schemas import (
    ColumnInput,
    ColumnRename,
    ColumnsAlter,
    ColumnsCreate,
    ColumnsDelete,
    ColumnTypeChange,
)
from src.schemaplane.services import ColumnService
from tests.utils.fakes import driver_error

pytestmark = pytest.mark.unit


@pytest.fixture
def service(fake_router, test_settings) -> ColumnService:
    return ColumnService(fake_router, test_settings)


@pytest.fixture
def users(catalog) -> QualifiedName:
    return catalog.add_table("public.users", [("id", "serial"), ("email", "text")])


class TestCreateMany:
    async def test_adds_every_column(self, service, catalog, users):
        def apply(statement: str) -> None:
            name = statement.split("ADD COLUMN ")[1].split('"')[1]
            catalog.add_columns(users, [(name, "int")])

        catalog.on_execute = apply
        command = ColumnsCreate(
            columns=[
                ColumnInput(name="age", type="int"),
                ColumnInput(name="score", type="float", default="0"),
            ]
        )

        columns = await service.create_many(uuid4(), "users", command)

        assert [column.name for column in columns] == ["id", "email", "age", "score"]
        assert catalog.executed == [
            'ALTER TABLE "public"."users" ADD COLUMN "age" integer',
            'ALTER TABLE "public"."users" ADD COLUMN "score" double precision DEFAULT 0',
        ]

    async def test_invalid_batch_names_each_failing_column(self, service, fake_router, users):
        command = ColumnsCreate(
            columns=[
                ColumnInput(name="age", type="int"),
                ColumnInput(name="1st", type="int"),
                ColumnInput(name="ok_col", type="text", default="drop table users"),
            ]
        )

        with pytest.raises(SchemaValidationError) as exc_info:
            await service.create_many(uuid4(), "users", command)

        assert exc_info.value.key == "column.error.invalid"
        assert [r.field for r in exc_info.value.errors] == [
            "columns[1].name",
            "columns[2].default",
        ]
        assert not fake_router.contacted

    async def test_empty_batch(self, service, fake_router):
        with pytest.raises(SchemaValidationError) as exc_info:
            await service.create_many(uuid4(), "users", ColumnsCreate(columns=[]))

        assert exc_info.value.errors[0].reason == RejectionReason.EMPTY_BATCH
        assert not fake_router.contacted

    async def test_some_already_exist(self, service, catalog, users):
        command = ColumnsCreate(
            columns=[
                ColumnInput(name="age", type="int"),
                ColumnInput(name="email", type="text"),
            ]
        )

        with pytest.raises(ConflictError) as exc_info:
            await service.create_many(uuid4(), "users", command)

        assert exc_info.value.key == "column.error.someAlreadyExist"
        assert "email" in exc_info.value.message
        assert catalog.executed == []

    async def test_failure_mid_batch_leaves_table_unchanged(self, service, catalog, users):
        def apply(statement: str) -> None:
            if '"active"' in statement:
                raise driver_error("42601", "syntax error")
            catalog.add_columns(users, [("age", "int")])

        catalog.on_execute = apply
        command = ColumnsCreate(
            columns=[
                ColumnInput(name="age", type="int"),
                ColumnInput(name="active", type="boolean"),
            ]
        )

        with pytest.raises(ExecutionError) as exc_info:
            await service.create_many(uuid4(), "users", command)

        assert exc_info.value.key == "database.error.execution"
        assert len(catalog.executed) == 2
        assert catalog.column_names(users) == ["id", "email"]

    async def test_missing_table(self, service):
        command = ColumnsCreate(columns=[ColumnInput(name="age", type="int")])

        with pytest.raises(NotFoundError) as exc_info:
            await service.create_many(uuid4(), "orders", command)

        assert exc_info.value.key == "table.error.notFound"

    async def test_missing_reference(self, service, catalog, users):
        command = ColumnsCreate(
            columns=[
                ColumnInput(
                    name="team_id",
                    type="int",
                    foreign=True,
                    reference_table="teams",
                    reference_column="id",
                )
            ]
        )

        with pytest.raises(ConflictError) as exc_info:
            await service.create_many(uuid4(), "users", command)

        assert exc_info.value.key == "column.error.referenceNotFound"
        assert catalog.executed == []


class TestAlterMany:
    async def test_changes_types_without_cast(self, service, catalog, users):
        def apply(statement: str) -> None:
            catalog.tables[users][1] = ColumnDefinition(name="email", type="varchar", position=2)

        catalog.on_execute = apply
        command = ColumnsAlter(columns=[ColumnTypeChange(name="email", type="varchar")])

        columns = await service.alter_many(uuid4(), "users", command)

        assert columns[1].type == "varchar"
        assert catalog.executed == [
            'ALTER TABLE "public"."users" ALTER COLUMN "email" TYPE varchar'
        ]

    async def test_some_not_found(self, service, catalog, users):
        command = ColumnsAlter(
            columns=[
                ColumnTypeChange(name="email", type="varchar"),
                ColumnTypeChange(name="nickname", type="text"),
            ]
        )

        with pytest.raises(NotFoundError) as exc_info:
            await service.alter_many(uuid4(), "users", command)

        assert exc_info.value.key == "column.error.someNotFound"
        assert "nickname" in exc_info.value.message
        assert catalog.executed == []

    async def test_incompatible_cast_is_data_conversion(self, service, catalog, users):
        catalog.execute_error = driver_error("42804", "column cannot be cast automatically")
        command = ColumnsAlter(columns=[ColumnTypeChange(name="email", type="int")])

        with pytest.raises(ExecutionError) as exc_info:
            await service.alter_many(uuid4(), "users", command)

        assert exc_info.value.key == "database.error.dataConversion"
        assert exc_info.value.sqlstate == "42804"

    async def test_type_outside_vocabulary(self, service, fake_router):
        command = ColumnsAlter(columns=[ColumnTypeChange(name="email", type="citext")])

        with pytest.raises(SchemaValidationError) as exc_info:
            await service.alter_many(uuid4(), "users", command)

        assert [r.field for r in exc_info.value.errors] == ["columns[0].type"]
        assert not fake_router.contacted

    async def test_serial_is_not_a_type_change_target(self, service, fake_router, users):
        command = ColumnsAlter(columns=[ColumnTypeChange(name="id", type="serial")])

        with pytest.raises(SchemaValidationError) as exc_info:
            await service.alter_many(uuid4(), "users", command)

        (rejection,) = exc_info.value.errors
        assert rejection.reason == RejectionReason.TYPE_NOT_ALLOWED
        assert rejection.field == "columns[0].type"
        assert not fake_router.contacted


class TestRenameColumn:
    async def test_rename(self, service, catalog, users):
        def apply(statement: str) -> None:
            catalog.tables[users][1] = ColumnDefinition(name="mail", type="text", position=2)

        catalog.on_execute = apply

        columns = await service.rename(uuid4(), "users", "email", ColumnRename(name="mail"))

        assert [column.name for column in columns] == ["id", "mail"]
        assert catalog.executed == [
            'ALTER TABLE "public"."users" RENAME COLUMN "email" TO "mail"'
        ]

    async def test_source_missing(self, service, users):
        with pytest.raises(NotFoundError) as exc_info:
            await service.rename(uuid4(), "users", "nickname", ColumnRename(name="alias"))

        assert exc_info.value.key == "column.error.notFound"

    async def test_target_exists(self, service, catalog, users):
        with pytest.raises(ConflictError) as exc_info:
            await service.rename(uuid4(), "users", "email", ColumnRename(name="id"))

        assert exc_info.value.key == "column.error.alreadyExists"
        assert catalog.executed == []

    async def test_reserved_target(self, service, fake_router):
        with pytest.raises(SchemaValidationError):
            await service.rename(uuid4(), "users", "email", ColumnRename(name="xmin"))

        assert not fake_router.contacted


class TestDeleteColumns:
    async def test_delete(self, service, catalog, users):
        assert await service.delete(uuid4(), "users", "email") is True
        assert catalog.executed == ['ALTER TABLE "public"."users" DROP COLUMN "email"']

    async def test_delete_missing(self, service, catalog, users):
        with pytest.raises(NotFoundError) as exc_info:
            await service.delete(uuid4(), "users", "nickname")

        assert exc_info.value.key == "column.error.notFound"
        assert exc_info.value.target == "public.users.nickname"

    async def test_delete_many_single_statement(self, service, catalog, users):
        assert await service.delete_many(uuid4(), "users", ColumnsDelete(names=["id", "email"]))
        assert catalog.executed == [
            'ALTER TABLE "public"."users" DROP COLUMN "id", DROP COLUMN "email"'
        ]

    async def test_delete_many_some_missing(self, service, catalog, users):
        with pytest.raises(NotFoundError) as exc_info:
            await service.delete_many(
                uuid4(), "users", ColumnsDelete(names=["email", "nickname"])
            )

        assert exc_info.value.key == "column.error.someNotFound"
        assert catalog.executed == []

    async def test_delete_many_rejects_empty_and_duplicates(self, service, fake_router):
        with pytest.raises(SchemaValidationError) as exc_info:
            await service.delete_many(uuid4(), "users", ColumnsDelete(names=[]))
        assert exc_info.value.errors[0].field == "names"

        with pytest.raises(SchemaValidationError) as exc_info:
            await service.delete_many(uuid4(), "users", ColumnsDelete(names=["email", "EMAIL"]))
        assert exc_info.value.errors[0].field == "names[1]"

        assert not fake_router.contacted


class TestListColumns:
    async def test_list_in_ordinal_order(self, service, users):
        columns = await service.list(uuid4(), "users")

        assert [(column.name, column.position) for column in columns] == [
            ("id", 1),
            ("email", 2),
        ]

    async def test_list_missing_table(self, service):
        with pytest.raises(NotFoundError):
            await service.list(uuid4(), "users")
