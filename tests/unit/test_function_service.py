"""Tests for FunctionService."""

from uuid import uuid4

import pytest

from src.schemaplane.core.exceptions import (
    ConflictError,
    ExecutionError,
    NotFoundError,
    SchemaValidationError,
)
from src.schemaplane.models.catalog import FunctionDefinition, FunctionParameter
from src.schemaplane.schemas import FunctionCreate, FunctionParameterInput
from src.schemaplane.services import FunctionService
from tests.utils.fakes import driver_error

pytestmark = pytest.mark.unit


@pytest.fixture
def service(fake_router, test_settings) -> FunctionService:
    return FunctionService(fake_router, test_settings)


def _command(**overrides) -> FunctionCreate:
    values = {
        "name": "add_numbers",
        "parameters": [
            FunctionParameterInput(name="a", type="integer"),
            FunctionParameterInput(name="b", type="integer"),
        ],
        "definition": "BEGIN RETURN a + b; END",
        "language": "plpgsql",
        "return_type": "integer",
    }
    values.update(overrides)
    return FunctionCreate(**values)


def _store(catalog, name: str = "add_numbers", body: str = "BEGIN RETURN a + b; END;") -> None:
    catalog.functions[("public", name)] = FunctionDefinition(
        schema="public",
        name=name,
        parameters=[FunctionParameter("a", "integer"), FunctionParameter("b", "integer")],
        return_type="integer",
        language="plpgsql",
        body=body,
    )


class TestCreateFunction:
    async def test_create(self, service, catalog):
        catalog.on_execute = lambda statement: _store(catalog)

        function = await service.create(uuid4(), "public", _command())

        assert function.name == "add_numbers"
        assert catalog.executed == [
            'CREATE FUNCTION "public"."add_numbers"("a" integer, "b" integer) '
            "RETURNS integer AS $fn$\n"
            "BEGIN RETURN a + b; END;\n"
            "$fn$ LANGUAGE plpgsql"
        ]

    async def test_already_exists(self, service, catalog):
        _store(catalog)

        with pytest.raises(ConflictError) as exc_info:
            await service.create(uuid4(), "public", _command())

        assert exc_info.value.key == "function.error.alreadyExists"
        assert catalog.executed == []

    async def test_unpaired_body_rejected_before_database(self, service, fake_router):
        with pytest.raises(SchemaValidationError) as exc_info:
            await service.create(uuid4(), "public", _command(definition="RETURN a + b;"))

        assert exc_info.value.key == "function.error.invalid"
        assert exc_info.value.errors[0].field == "definition"
        assert not fake_router.contacted

    async def test_disallowed_language(self, service, fake_router):
        with pytest.raises(SchemaValidationError) as exc_info:
            await service.create(uuid4(), "public", _command(language="plpython3u"))

        assert exc_info.value.errors[0].field == "language"
        assert not fake_router.contacted

    async def test_body_error_from_database(self, service, catalog):
        catalog.execute_error = driver_error("42601", 'syntax error at or near "RETURN"')

        with pytest.raises(ExecutionError) as exc_info:
            await service.create(uuid4(), "public", _command())

        assert exc_info.value.key == "database.error.execution"
        assert exc_info.value.message == 'syntax error at or near "RETURN"'


class TestUpdateFunction:
    async def test_drops_then_creates_in_one_transaction(self, service, fake_router, catalog):
        _store(catalog)
        catalog.on_execute = lambda statement: (
            _store(catalog, body="BEGIN RETURN a * b; END;")
            if statement.startswith("CREATE")
            else None
        )

        function = await service.update(
            uuid4(), "public", "add_numbers", _command(definition="BEGIN RETURN a * b; END")
        )

        assert function.body == "BEGIN RETURN a * b; END;"
        assert catalog.executed[0] == 'DROP FUNCTION "public"."add_numbers"(integer, integer)'
        assert catalog.executed[1].startswith('CREATE FUNCTION "public"."add_numbers"')
        assert fake_router.transactions == 1

    async def test_failed_create_keeps_old_function(self, service, catalog):
        _store(catalog)

        def apply(statement: str) -> None:
            if statement.startswith("DROP"):
                catalog.functions.pop(("public", "add_numbers"))
            else:
                raise driver_error("42P13", "return type mismatch")

        catalog.on_execute = apply

        with pytest.raises(ExecutionError):
            await service.update(uuid4(), "public", "add_numbers", _command())

        assert ("public", "add_numbers") in catalog.functions

    async def test_update_missing(self, service, catalog):
        with pytest.raises(NotFoundError) as exc_info:
            await service.update(uuid4(), "public", "add_numbers", _command())

        assert exc_info.value.key == "function.error.notFound"
        assert catalog.executed == []

    async def test_rename_onto_existing_function(self, service, catalog):
        _store(catalog)
        _store(catalog, name="sum_numbers")

        with pytest.raises(ConflictError):
            await service.update(
                uuid4(), "public", "add_numbers", _command(name="sum_numbers")
            )

        assert catalog.executed == []


class TestReadAndDeleteFunctions:
    async def test_get(self, service, catalog):
        _store(catalog)

        function = await service.get(uuid4(), "public", "add_numbers")

        assert [parameter.name for parameter in function.parameters] == ["a", "b"]

    async def test_get_missing(self, service):
        with pytest.raises(NotFoundError):
            await service.get(uuid4(), "public", "add_numbers")

    async def test_list(self, service, catalog):
        _store(catalog)
        _store(catalog, name="mul_numbers")

        functions = await service.list(uuid4())

        assert [function.name for function in functions] == ["add_numbers", "mul_numbers"]

    async def test_delete(self, service, catalog):
        _store(catalog)

        assert await service.delete(uuid4(), "public", "add_numbers") is True
        assert catalog.executed == ['DROP FUNCTION "public"."add_numbers"']

    async def test_delete_missing(self, service, catalog):
        with pytest.raises(NotFoundError):
            await service.delete(uuid4(), "public", "add_numbers")

        assert catalog.executed == []
