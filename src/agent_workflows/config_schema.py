"""
JSON schemas for configuration validation.
"""

PROVIDER_SCHEMA = {
    "type": "object",
    "properties": {
        "api_key": {"type": ["string", "null"]},
        "base_url": {"type": ["string", "null"]},
        "organization": {"type": ["string", "null"]},
        "timeout": {"type": "number", "minimum": 0.1},
        "max_retries": {"type": "integer", "minimum": 0},
        "default_model": {"type": ["string", "null"]},
        "default_temperature": {"type": ["number", "null"], "minimum": 0.0, "maximum": 2.0},
        "default_max_tokens": {"type": ["integer", "null"], "minimum": 1},
    },
    "additionalProperties": False,
}

WORKFLOW_SCHEMA = {
    "type": "object",
    "properties": {
        "provider": {"type": "string", "enum": ["openai", "anthropic", "google", "custom"]},
        "model": {"type": ["string", "null"]},
        "temperature": {"type": ["number", "null"], "minimum": 0.0, "maximum": 2.0},
        "max_tokens": {"type": ["integer", "null"], "minimum": 1},
        "max_steps": {"type": "integer", "minimum": 1},
        "max_retries": {"type": "integer", "minimum": 0},
        "retry_delay": {"type": "number", "minimum": 0.0},
        "retry_backoff": {"type": "number", "minimum": 1.0},
        "timeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "min_successful_agents": {"type": "integer", "minimum": 1},
        "quality_threshold": {"type": "integer", "minimum": 0, "maximum": 100},
        "max_iterations": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "logger_name": {"type": "string", "minLength": 1},
        "log_workflow_events": {"type": "boolean"},
        "log_step_events": {"type": "boolean"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "openai": PROVIDER_SCHEMA,
        "anthropic": PROVIDER_SCHEMA,
        "google": PROVIDER_SCHEMA,
        "workflow": WORKFLOW_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
    "additionalProperties": False,
}
