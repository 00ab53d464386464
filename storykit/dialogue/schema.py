"""
JSON schema for dialogue assets.
"""

SCALAR = {"type": ["string", "number", "boolean"]}

INSTRUCTION_LIST = {
    "type": "array",
    "items": {"$ref": "#/definitions/instruction"},
}

DIALOGUE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Dialogue asset",
    "type": "object",
    "required": ["name", "nodes"],
    "additionalProperties": False,
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "meta": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
        },
        "nodes": {
            "type": "object",
            "additionalProperties": INSTRUCTION_LIST,
        },
    },
    "definitions": {
        "instruction": {
            "type": "object",
            "minProperties": 1,
            "maxProperties": 1,
            "properties": {
                "Text": {"type": "string"},
                "GoTo": {"type": "string", "minLength": 1},
                "Branch": {
                    "type": "object",
                    "additionalProperties": INSTRUCTION_LIST,
                },
                "Prompt": {
                    "type": "object",
                    "required": ["message", "choices"],
                    "additionalProperties": False,
                    "properties": {
                        "message": {"type": "string"},
                        "choices": {
                            "type": "object",
                            "additionalProperties": {
                                "oneOf": [
                                    {"type": "string", "minLength": 1},
                                    {
                                        "type": "object",
                                        "required": ["GoTo"],
                                        "additionalProperties": False,
                                        "properties": {"GoTo": {"type": "string", "minLength": 1}},
                                    },
                                ],
                            },
                        },
                    },
                },
                "If": {
                    "type": "object",
                    "required": ["condition", "body"],
                    "additionalProperties": False,
                    "properties": {
                        "condition": {"type": "string", "minLength": 1},
                        "body": INSTRUCTION_LIST,
                    },
                },
                "Set": {
                    "type": "object",
                    "required": ["key", "value"],
                    "additionalProperties": False,
                    "properties": {
                        "key": {"type": "string", "minLength": 1},
                        "value": SCALAR,
                    },
                },
                "Command": {
                    "oneOf": [
                        {"type": "string", "minLength": 1},
                        {
                            "type": "object",
                            "required": ["name"],
                            "additionalProperties": False,
                            "properties": {
                                "name": {"type": "string", "minLength": 1},
                                "args": {"type": "array", "items": SCALAR},
                            },
                        },
                    ],
                },
            },
            "additionalProperties": False,
        },
    },
}
