"""Turn the untyped argument bag of a structured call into typed values.

Arguments reach the executor as strings (from the text parser) or loosely
typed JSON (from the model). Each value is coerced to the type its
:class:`ParameterSpec` declares, then the result is checked against the
action's JSON schema with ``jsonschema``.

A bad value for a required parameter rejects the call with a descriptive
error; a bad optional value is dropped, so the action falls back to its
default.
"""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Dict, Mapping

from jsonschema import Draft202012Validator

from agentcord.datatypes.action_datatypes import ActionDefinition, ParameterSpec
from agentcord.util.logger import get_logger

logger = get_logger("argument_coercion")


TRUE_WORDS = frozenset({"true", "yes", "on", "1", "enable", "enabled"})
FALSE_WORDS = frozenset({"false", "no", "off", "0", "disable", "disabled"})


class ArgumentError(ValueError):
    """Raised when a call's arguments cannot be turned into a valid typed record.

    The message is the complete user-facing error string.
    """


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_string(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value).strip()


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValueError("expected a number")
    if isinstance(value, (int, float)):
        number = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise ValueError("expected a number") from None
    if isinstance(number, float):
        if not math.isfinite(number):
            raise ValueError("expected a finite number")
        if number.is_integer():
            return int(number)
    return number


def _to_integer(value: Any) -> int:
    number = _to_number(value)
    if not isinstance(number, int):
        raise ValueError("expected a whole number")
    return number


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if token in TRUE_WORDS:
        return True
    if token in FALSE_WORDS:
        return False
    raise ValueError("expected true or false")


def _to_array(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    try:
        parsed = json.loads(str(value))
    except json.JSONDecodeError:
        raise ValueError("expected a JSON list") from None
    if not isinstance(parsed, list):
        raise ValueError("expected a list")
    return parsed


def _to_object(value: Any) -> dict:
    if isinstance(value, dict):
        return dict(value)
    try:
        parsed = json.loads(str(value))
    except json.JSONDecodeError:
        raise ValueError("expected a JSON object") from None
    if not isinstance(parsed, dict):
        raise ValueError("expected an object")
    return parsed


COERCERS: Dict[str, Callable[[Any], Any]] = {
    "string": _to_string,
    "number": _to_number,
    "integer": _to_integer,
    "boolean": _to_boolean,
    "array": _to_array,
    "object": _to_object,
}


def coerce_value(spec: ParameterSpec, value: Any) -> Any:
    """Coerce one raw value to ``spec``'s type. Raises ValueError on mismatch."""
    coerced = COERCERS[spec.type](value)
    if spec.enum is not None and isinstance(coerced, str):
        coerced = coerced.lower()
    return coerced


def _validation_schema(definition: ActionDefinition) -> Dict[str, Any]:
    # Array items are checked leniently by the actions themselves (e.g. embed fields).
    schema = definition.to_json_schema()
    for prop in schema["properties"].values():
        prop.pop("items", None)
    return schema


def coerce_arguments(definition: ActionDefinition, raw: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a typed copy of ``raw`` for ``definition``.

    Unknown keys and blank values are ignored.

    Raises:
        ArgumentError: A required argument is missing or cannot be coerced, or
            a value falls outside its enumeration.
    """
    raw = raw or {}
    coerced: Dict[str, Any] = {}

    for key, value in raw.items():
        spec = definition.get_parameter(key)
        if spec is None:
            logger.debug("[ARGUMENT COERCION] Ignoring unknown argument '%s' for %s", key, definition.name)
            continue
        if _is_blank(value):
            continue
        try:
            coerced[key] = coerce_value(spec, value)
        except (ValueError, TypeError) as exc:
            if spec.required:
                raise ArgumentError(
                    f"Error: Invalid value '{value}' for '{key}' in {definition.name}: {exc}."
                ) from exc
            logger.warning(
                "[ARGUMENT COERCION] Dropping optional argument '%s'=%r for %s: %s",
                key, value, definition.name, exc,
            )

    validator = Draft202012Validator(_validation_schema(definition))
    error = next(iter(sorted(validator.iter_errors(coerced), key=lambda e: list(e.path))), None)
    if error is None:
        return coerced

    if error.validator == "required":
        missing = next(p for p in error.validator_value if p not in error.instance)
        raise ArgumentError(f"Error: Missing required argument '{missing}' for {definition.name}.")

    param = error.path[0] if error.path else "arguments"
    if error.validator == "enum":
        valid = ", ".join(str(v) for v in error.validator_value)
        raise ArgumentError(f"Error: Invalid {param} '{error.instance}'. Valid values are: {valid}.")

    raise ArgumentError(f"Error: Invalid value for '{param}' in {definition.name}: {error.message}.")
