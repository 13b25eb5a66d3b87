"""JSON schema for the persisted rewrite session."""

from __future__ import annotations

_STRING_OR_NULL: dict[str, object] = {"type": ["string", "null"]}

ITEM_SCHEMA: dict[str, object] = {
    "type": "object",
    "required": ["kind", "identifier", "title", "original_html", "status"],
    "additionalProperties": False,
    "properties": {
        "kind": {"type": "string", "enum": ["page", "assignment", "discussion"]},
        "identifier": {"type": ["string", "integer"]},
        "title": {"type": "string"},
        "original_html": {"type": "string"},
        "url": _STRING_OR_NULL,
        "status": {
            "type": "string",
            "enum": ["original", "rewritten", "approved", "error"],
        },
        "rewritten_html": _STRING_OR_NULL,
        "last_error": _STRING_OR_NULL,
    },
}

MODEL_PROFILE_SCHEMA: dict[str, object] = {
    "type": "object",
    "required": [
        "course_id",
        "course_name",
        "sample_counts",
        "context",
        "signature_snippets",
        "style_guide",
        "flags",
    ],
    "additionalProperties": False,
    "properties": {
        "course_id": {"type": "string"},
        "course_name": {"type": "string"},
        "sample_counts": {
            "type": "object",
            "required": ["pages", "assignments", "discussions"],
            "additionalProperties": False,
            "properties": {
                "pages": {"type": "integer", "minimum": 0},
                "assignments": {"type": "integer", "minimum": 0},
                "discussions": {"type": "integer", "minimum": 0},
            },
        },
        "context": {"type": "string"},
        "signature_snippets": {"type": "string"},
        "style_guide": {"type": "string"},
        "flags": {
            "type": "object",
            "required": ["version", "require_embed_wrapper"],
            "properties": {
                "version": {"type": "integer", "minimum": 1},
                "require_embed_wrapper": {"type": "boolean"},
            },
        },
    },
}

SESSION_SCHEMA: dict[str, object] = {
    "type": "object",
    "required": ["version", "items", "global_instructions", "item_instructions", "options"],
    "additionalProperties": False,
    "properties": {
        "version": {"type": "integer", "const": 1},
        "target_course_id": _STRING_OR_NULL,
        "target_course_name": _STRING_OR_NULL,
        "items": {"type": "array", "items": ITEM_SCHEMA},
        "global_instructions": {"type": "string"},
        "item_instructions": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
        "model_profile": {"oneOf": [{"type": "null"}, MODEL_PROFILE_SCHEMA]},
        "options": {
            "type": "object",
            "required": [
                "preserve_existing_design_tools",
                "skip_already_styled",
                "use_item_instructions",
            ],
            "additionalProperties": False,
            "properties": {
                "preserve_existing_design_tools": {"type": "boolean"},
                "skip_already_styled": {"type": "boolean"},
                "use_item_instructions": {"type": "boolean"},
            },
        },
    },
}
