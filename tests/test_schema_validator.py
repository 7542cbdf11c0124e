from llm_eval.schema_validator import (
    APIResponse,
    Person,
    TaskList,
    extract_json,
    validate_schema,
)


def test_valid_person():
    result = validate_schema('{"name": "Alice", "age": 30, "email": "alice@example.com"}', Person)
    assert result.valid is True
    assert result.data.name == "Alice"
    assert result.errors == []


def test_invalid_json_is_reported():
    result = validate_schema('{ name: "Alice", age: 30 }', Person)
    assert result.valid is False
    assert result.data is None
    assert result.errors[0].startswith("Invalid JSON:")


def test_errors_are_keyed_by_field_path():
    result = validate_schema(
        '{"tasks": [{"id": "1", "title": "x", "completed": false, "priority": "urgent"}]}', TaskList
    )
    assert result.valid is False
    assert len(result.errors) == 1
    assert result.errors[0].startswith("tasks.0.priority:")


def test_constraint_violations():
    result = validate_schema('{"name": "Bob", "age": -1}', Person)
    assert not result.valid
    assert any(e.startswith("age:") for e in result.errors)

    result = validate_schema('{"status": "ok"}', APIResponse)
    paths = {e.split(":")[0] for e in result.errors}
    assert paths == {"status", "message"}


def test_extract_json_from_code_block():
    assert extract_json('```json\n{"name": "Bob", "age": 25}\n```') == '{"name": "Bob", "age": 25}'


def test_extract_json_from_prose():
    text = 'Sure! Here it is: {"a": {"b": 1}} Hope that helps.'
    assert extract_json(text) == '{"a": {"b": 1}}'


def test_extract_json_passthrough():
    assert extract_json("[1, 2]") == "[1, 2]"
