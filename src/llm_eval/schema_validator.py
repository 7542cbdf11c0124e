"""Validation of structured (JSON) LLM outputs against pydantic models."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, EmailStr, PositiveInt, ValidationError

T = TypeVar("T", bound=BaseModel)

CODE_BLOCK = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class Person(BaseModel):
    name: str
    age: PositiveInt
    email: Optional[EmailStr] = None


class Task(BaseModel):
    id: str
    title: str
    completed: bool
    priority: Literal["low", "medium", "high"]


class TaskList(BaseModel):
    tasks: List[Task]


class APIResponse(BaseModel):
    status: Literal["success", "error"]
    data: Optional[Dict[str, Any]] = None
    message: str


@dataclass
class SchemaValidation(Generic[T]):
    valid: bool
    data: Optional[T] = None
    errors: List[str] = field(default_factory=list)


def validate_schema(text: str, schema: Type[T]) -> SchemaValidation[T]:
    try:
        parsed = json.loads(text)
    except ValueError as e:
        return SchemaValidation(valid=False, errors=[f"Invalid JSON: {e}"])

    try:
        data = schema.model_validate(parsed)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        return SchemaValidation(valid=False, errors=errors)
    return SchemaValidation(valid=True, data=data)


def extract_json(text: str) -> str:
    """Pull JSON out of a markdown code fence or surrounding prose."""
    m = CODE_BLOCK.search(text)
    if m:
        return m.group(1).strip()

    m = JSON_OBJECT.search(text)
    if m:
        return m.group(0)

    return text
