"""Derive Gemini-compatible response schemas from Pydantic models"""
from typing import Any, Dict, Type

from pydantic import BaseModel

# Only these keys survive; Gemini rejects the rest of JSON Schema
SUPPORTED_SCHEMA_KEYS = {
    "type", "properties", "required", "items", "description", "enum", "format"
}


def resolve_schema_refs(schema: Any, defs: Dict[str, Any]) -> Any:
    """Recursively resolve $ref in schema by inlining definitions"""
    if isinstance(schema, dict):
        if "$ref" in schema:
            # Extract the definition name from $ref like "#/$defs/DayLLM"
            ref_path = schema["$ref"].split("/")[-1]
            if ref_path in defs:
                return resolve_schema_refs(defs[ref_path], defs)
            return schema
        return {k: resolve_schema_refs(v, defs) for k, v in schema.items()}
    elif isinstance(schema, list):
        return [resolve_schema_refs(item, defs) for item in schema]
    return schema


def remove_unsupported_fields(schema: Any) -> Any:
    """
    Keep only fields that Gemini actually supports.

    Optional fields arrive as anyOf[X, null] and are flattened to X.
    """
    if isinstance(schema, dict):
        if "anyOf" in schema:
            for option in schema["anyOf"]:
                if option.get("type") != "null":
                    schema = {**schema, **option}
                    break
            schema.pop("anyOf", None)

        filtered = {k: v for k, v in schema.items() if k in SUPPORTED_SCHEMA_KEYS}

        result = {}
        for k, v in filtered.items():
            if k == "properties" and isinstance(v, dict):
                result[k] = {name: remove_unsupported_fields(prop) for name, prop in v.items()}
            elif k == "items" and isinstance(v, dict):
                result[k] = remove_unsupported_fields(v)
            else:
                result[k] = v

        # Only keep required entries whose property still exists
        if "required" in result and "properties" in result:
            existing = set(result["properties"].keys())
            result["required"] = [prop for prop in result["required"] if prop in existing]

        return result
    elif isinstance(schema, list):
        return [remove_unsupported_fields(item) for item in schema]
    return schema


def model_to_gemini_schema(model_class: Type[BaseModel]) -> Dict[str, Any]:
    """Inline and clean a model's JSON schema for use as a response schema"""
    raw_schema = model_class.model_json_schema()
    defs = raw_schema.pop("$defs", {})
    resolved = resolve_schema_refs(raw_schema, defs)
    return remove_unsupported_fields(resolved)
