"""End-to-end schema operations against a real tenant database."""

import pytest

from src.schemaplane.core.exceptions import (
    ConflictError,
    ExecutionError,
    NotFoundError,
    SchemaValidationError,
)
from src.schemaplane.schemas import (
    ColumnInput,
    ColumnRename,
    ColumnsAlter,
    ColumnsCreate,
    ColumnsDelete,
    ColumnTypeChange,
    FunctionCreate,
    FunctionParameterInput,
    IndexCreate,
    TableCreate,
    TableRename,
)

pytestmark = pytest.mark.integration

USERS = TableCreate(
    name="users",
    columns=[
        ColumnInput(name="id", type="serial", primary=True),
        ColumnInput(name="email", type="varchar", not_null=True, unique=True),
        ColumnInput(name="age", type="int"),
        ColumnInput(name="active", type="boolean", default="true"),
    ],
)


async def _insert(container, project, statement: str) -> None:
    async with container.router.begin(project.id) as connection:
        await connection.exec_driver_sql(statement)


async def _count(container, project, table: str) -> int:
    async with container.router.connect(project.id) as connection:
        result = await connection.exec_driver_sql(f"SELECT count(*) FROM {table}")
        return result.scalar_one()


class TestTables:
    async def test_created_table_round_trips(self, container, project):
        created = await container.tables.create(project.id, USERS)
        fetched = await container.tables.get(project.id, "users")

        assert fetched == created
        assert [(c.name, c.type) for c in fetched.columns] == [
            ("id", "serial"),
            ("email", "varchar"),
            ("age", "int"),
            ("active", "boolean"),
        ]
        by_name = {column.name: column for column in fetched.columns}
        assert by_name["id"].primary is True
        assert by_name["id"].default is None
        assert by_name["email"].not_null is True
        assert by_name["email"].unique is True
        assert by_name["age"].not_null is False
        assert by_name["active"].default == "true"

    async def test_reads_are_idempotent(self, container, project):
        await container.tables.create(project.id, USERS)

        first = await container.tables.get(project.id, "public.users")
        second = await container.tables.get(project.id, "public.users")

        assert first == second

    async def test_list(self, container, project):
        await container.tables.create(project.id, USERS)
        await container.tables.create(
            project.id, TableCreate(name="accounts", columns=[ColumnInput(name="id", type="int")])
        )

        tables = await container.tables.list(project.id)

        assert [table.name for table in tables] == ["accounts", "users"]

    async def test_create_conflict(self, container, project):
        await container.tables.create(project.id, USERS)

        with pytest.raises(ConflictError) as exc_info:
            await container.tables.create(project.id, USERS)

        assert exc_info.value.key == "table.error.alreadyExists"

    async def test_foreign_key_to_existing_table(self, container, project):
        await container.tables.create(project.id, USERS)

        orders = await container.tables.create(
            project.id,
            TableCreate(
                name="orders",
                columns=[
                    ColumnInput(name="id", type="serial", primary=True),
                    ColumnInput(
                        name="user_id",
                        type="int",
                        foreign=True,
                        reference_table="public.users",
                        reference_column="id",
                    ),
                ],
            ),
        )

        user_id = next(column for column in orders.columns if column.name == "user_id")
        assert user_id.foreign is True
        assert user_id.reference_table == "public.users"
        assert user_id.reference_column == "id"

    async def test_duplicate_copies_rows(self, container, project):
        await container.tables.create(project.id, USERS)
        await _insert(
            container,
            project,
            "INSERT INTO users (email, age) VALUES ('a@example.com', 30), ('b@example.com', 41)",
        )

        copy = await container.tables.duplicate(project.id, "users", TableRename(name="users_copy"))

        assert [column.name for column in copy.columns] == ["id", "email", "age", "active"]
        assert await _count(container, project, "users_copy") == 2

    async def test_duplicate_onto_existing_table(self, container, project):
        await container.tables.create(project.id, USERS)

        with pytest.raises(ConflictError) as exc_info:
            await container.tables.duplicate(project.id, "users", TableRename(name="users"))

        assert exc_info.value.key == "table.error.alreadyExists"

    async def test_rename(self, container, project):
        await container.tables.create(project.id, USERS)

        renamed = await container.tables.rename(project.id, "users", TableRename(name="members"))

        assert renamed.name == "members"
        with pytest.raises(NotFoundError):
            await container.tables.get(project.id, "users")

    async def test_delete_with_dependents_is_refused(self, container, project):
        await container.tables.create(project.id, USERS)
        await _insert(container, project, "CREATE VIEW active_users AS SELECT * FROM users")

        with pytest.raises(ConflictError) as exc_info:
            await container.tables.delete(project.id, "users")

        assert exc_info.value.key == "table.error.hasDependents"
        assert await container.tables.get(project.id, "users")

    async def test_delete(self, container, project):
        await container.tables.create(project.id, USERS)

        assert await container.tables.delete(project.id, "users") is True
        assert await container.tables.list(project.id) == []


class TestColumns:
    async def test_add_columns(self, container, project):
        await container.tables.create(project.id, USERS)

        columns = await container.columns.create_many(
            project.id,
            "users",
            ColumnsCreate(
                columns=[
                    ColumnInput(name="nickname", type="text"),
                    ColumnInput(name="score", type="float", default="0"),
                ]
            ),
        )

        assert [c.name for c in columns][-2:] == ["nickname", "score"]
        assert columns[-1].type == "float"

    async def test_failed_batch_leaves_table_unchanged(self, container, project):
        await container.tables.create(project.id, USERS)
        before = await container.columns.list(project.id, "users")

        with pytest.raises(ExecutionError) as exc_info:
            await container.columns.create_many(
                project.id,
                "users",
                ColumnsCreate(
                    columns=[
                        ColumnInput(name="nickname", type="text"),
                        ColumnInput(name="rank", type="int", default="'abc'"),
                    ]
                ),
            )

        assert exc_info.value.key == "database.error.dataConversion"
        assert await container.columns.list(project.id, "users") == before

    async def test_incompatible_type_change(self, container, project):
        await container.tables.create(
            project.id, TableCreate(name="notes", columns=[ColumnInput(name="body", type="text")])
        )
        await _insert(container, project, "INSERT INTO notes (body) VALUES ('not a number')")

        with pytest.raises(ExecutionError) as exc_info:
            await container.columns.alter_many(
                project.id,
                "notes",
                ColumnsAlter(columns=[ColumnTypeChange(name="body", type="int")]),
            )

        assert exc_info.value.key == "database.error.dataConversion"
        (column,) = await container.columns.list(project.id, "notes")
        assert column.type == "text"

    async def test_compatible_type_change(self, container, project):
        await container.tables.create(project.id, USERS)

        columns = await container.columns.alter_many(
            project.id, "users", ColumnsAlter(columns=[ColumnTypeChange(name="age", type="float")])
        )

        assert next(c for c in columns if c.name == "age").type == "float"

    async def test_serial_type_change_is_rejected(self, container, project):
        await container.tables.create(project.id, USERS)

        with pytest.raises(SchemaValidationError):
            await container.columns.alter_many(
                project.id,
                "users",
                ColumnsAlter(columns=[ColumnTypeChange(name="age", type="serial")]),
            )

        columns = await container.columns.list(project.id, "users")
        assert next(c for c in columns if c.name == "age").type == "int"

    async def test_primary_key_reads_back_without_unique(self, container, project):
        table = await container.tables.create(
            project.id,
            TableCreate(
                name="codes",
                columns=[ColumnInput(name="code", type="int", primary=True, unique=True)],
            ),
        )

        (column,) = table.columns
        assert column.primary is True
        assert column.unique is False

    async def test_rename_and_delete(self, container, project):
        await container.tables.create(project.id, USERS)

        columns = await container.columns.rename(
            project.id, "users", "age", ColumnRename(name="years")
        )
        assert "years" in [c.name for c in columns]

        await container.columns.delete(project.id, "users", "years")
        await container.columns.delete_many(
            project.id, "users", ColumnsDelete(names=["active", "email"])
        )

        assert [c.name for c in await container.columns.list(project.id, "users")] == ["id"]


class TestIndexes:
    async def test_lifecycle(self, container, project):
        await container.tables.create(project.id, USERS)

        created = await container.indexes.create(
            project.id, "users", IndexCreate(name="idx_users_age_email", columns=["age", "email"])
        )
        fetched = await container.indexes.get(project.id, "users", "idx_users_age_email")

        assert created.columns == ["age", "email"]
        assert fetched.columns == ["age", "email"]
        assert "idx_users_age_email" in await container.indexes.list(project.id, "users")

        assert await container.indexes.delete(project.id, "users", "idx_users_age_email") is True
        assert "idx_users_age_email" not in await container.indexes.list(project.id, "users")

    async def test_name_shared_with_a_table(self, container, project):
        await container.tables.create(project.id, USERS)

        with pytest.raises(ConflictError) as exc_info:
            await container.indexes.create(
                project.id, "users", IndexCreate(name="users", columns=["age"])
            )

        assert exc_info.value.key == "index.error.alreadyExists"


class TestFunctions:
    ADD = FunctionCreate(
        name="add_numbers",
        parameters=[
            FunctionParameterInput(name="a", type="integer"),
            FunctionParameterInput(name="b", type="integer"),
        ],
        definition="BEGIN RETURN a + b; END;",
        language="plpgsql",
        return_type="integer",
    )

    async def _call(self, container, project) -> int:
        async with container.router.connect(project.id) as connection:
            result = await connection.exec_driver_sql("SELECT public.add_numbers(2, 3)")
            return result.scalar_one()

    async def test_lifecycle(self, container, project):
        created = await container.functions.create(project.id, "public", self.ADD)

        assert created.return_type == "integer"
        assert [(p.name, p.type) for p in created.parameters] == [
            ("a", "integer"),
            ("b", "integer"),
        ]
        assert "RETURN a + b" in created.body
        assert await self._call(container, project) == 5

        updated = await container.functions.update(
            project.id,
            "public",
            "add_numbers",
            self.ADD.model_copy(update={"definition": "BEGIN RETURN a * b; END;"}),
        )

        assert "RETURN a * b" in updated.body
        assert await self._call(container, project) == 6
        assert [f.name for f in await container.functions.list(project.id)] == ["add_numbers"]

        assert await container.functions.delete(project.id, "public", "add_numbers") is True
        with pytest.raises(NotFoundError):
            await container.functions.get(project.id, "public", "add_numbers")


async def test_stats(container, project):
    await container.tables.create(project.id, USERS)

    stats = await container.stats.get(project.id)

    assert stats.database_size
    assert "public.users" in [size.table_name for size in stats.table_sizes]
