"""Configuration models using Pydantic for validation."""
from typing import Dict, List, Literal, get_args
from pydantic import BaseModel, Field, field_validator
import os
import re


ComponentKind = Literal["apiserver", "kubelet", "scheduler", "controller_manager"]
COMPONENT_KINDS = get_args(ComponentKind)

# Metric name -> ordered permitted label keys
LabelSchema = Dict[str, List[str]]

_LABEL_NAME_RE = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def validate_schema_labels(schema: LabelSchema) -> LabelSchema:
    """
    Validate the label keys declared for each metric.

    Label names must match [a-zA-Z_][a-zA-Z0-9_]* and must not repeat
    within one metric.
    """
    for metric, labels in schema.items():
        for name in labels:
            if not _LABEL_NAME_RE.match(name):
                raise ValueError(f"Metric '{metric}' declares invalid label name '{name}'")
        if len(labels) != len(set(labels)):
            raise ValueError(f"Metric '{metric}' declares duplicate labels: {labels}")
    return schema


class SchemaRegistry(BaseModel):
    """Known label schemas: labels common to every component plus one schema per component kind."""
    common: LabelSchema = Field(default_factory=dict)
    components: Dict[ComponentKind, LabelSchema] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator('common')
    @classmethod
    def validate_common(cls, v):
        return validate_schema_labels(v)

    @field_validator('components')
    @classmethod
    def validate_components(cls, v):
        for schema in v.values():
            validate_schema_labels(schema)
        return v

    def for_component(self, kind: str) -> LabelSchema:
        """Return a copy of the schema declared for a component kind."""
        if kind not in COMPONENT_KINDS:
            raise ValueError(f"Unknown component '{kind}'. Known components: {list(COMPONENT_KINDS)}")
        schema = self.components.get(kind, {})
        return {metric: list(labels) for metric, labels in schema.items()}

    def known_metric_names(self, kind: str) -> set:
        """Metric names a grab from this component may legitimately expose."""
        return set(self.common) | set(self.for_component(kind))


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    master_suffix: str = "master"
    control_api_port: int = 8081


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    schemas: SchemaRegistry = Field(default_factory=SchemaRegistry)

    class Config:
        populate_by_name = True


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        if 'global' not in raw_config:
            raw_config['global'] = {}
        raw_config['global']['log_level'] = env_log_level

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
