"""Pydantic models for form definition validation.

These models check the structure of a form definition (as read from YAML,
JSON or a Python dict) before any rule objects are built, so malformed files
produce field-level error messages instead of failing half way through rule
construction.
"""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class BaseFormGateModel(BaseModel):
    """Base model with common configuration for all definition models."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
    )


class StepModel(BaseFormGateModel):
    """Pydantic model for a single step of a form."""

    name: str = Field(min_length=1, description="Unique step identifier")
    title: str = Field(default="", description="Human readable step title")
    required_fields: list[str] = Field(
        default_factory=list,
        description="Fields that must validate before leaving this step",
    )


class FormDefinitionModel(BaseFormGateModel):
    """Pydantic model for a complete form definition."""

    name: str = Field(min_length=1, description="Form identifier")
    title: str = Field(default="")
    description: str = Field(default="")
    multi_step: bool = Field(
        default=False,
        description="Whether steps must be walked in order before submitting",
    )
    defaults: dict[str, Any] = Field(default_factory=dict)
    steps: list[StepModel] = Field(min_length=1)
    rules: dict[str, list[dict[str, Any] | str]] = Field(default_factory=dict)
    form_rules: list[dict[str, Any]] = Field(default_factory=list)
    security_checks: dict[str, str] = Field(default_factory=dict)
    reason_field: str | None = None
    autosave_key: str | None = None

    @field_validator("autosave_key")
    @classmethod
    def validate_autosave_key(cls, v: str | None) -> str | None:
        if v is not None and "{" in v and "{entity_id}" not in v:
            raise ValueError("autosave_key may only use the {entity_id} placeholder")
        return v

    @model_validator(mode="after")
    def validate_references(self) -> "FormDefinitionModel":
        names = [step.name for step in self.steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step names: {', '.join(duplicates)}")

        if self.multi_step and len(self.steps) < 2:
            raise ValueError("A multi-step form needs at least two steps")
        return self
