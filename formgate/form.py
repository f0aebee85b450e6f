"""Form definitions: defaults, steps, rules and security checks."""

from copy import deepcopy
from typing import Any

from formgate.exceptions import RuleDefinitionError
from formgate.models import FormDefinitionDict, FormDefinitionModel
from formgate.rule import BaseRule, RuleSet
from formgate.step import Step


class FormDefinition:
    """
    Declarative description of one form.

    A definition is shared, immutable configuration; every session builds its
    own Step objects and Validator from it.

    Args:
        config: Form definition dictionary (validated with pydantic)
        extra_rules: Code-defined rules (e.g. capability checks) appended to
            the declared field rules

    Raises:
        pydantic.ValidationError: If the definition structure is invalid
        RuleDefinitionError: If a rule definition is invalid
    """

    def __init__(self, config: FormDefinitionDict, extra_rules: list[BaseRule] | None = None):
        model = FormDefinitionModel.model_validate(config)
        self.config = config
        self.name = model.name
        self.title = model.title or model.name
        self.description = model.description
        self.multi_step = model.multi_step
        self.defaults: dict[str, Any] = deepcopy(model.defaults)
        self.step_definitions = [step.model_dump() for step in model.steps]
        self.security_checks = dict(model.security_checks)
        self.reason_field = model.reason_field
        self.autosave_key = model.autosave_key

        self.rule_set = RuleSet.from_dict(model.rules, model.form_rules)
        self._extra_rules = list(extra_rules or [])
        for rule in self._extra_rules:
            self.rule_set.add_rule(rule)

        for check, field_name in self.security_checks.items():
            if not self.rule_set.rules_for(field_name):
                raise RuleDefinitionError(
                    f"Security check '{check}' refers to field '{field_name}' without rules",
                    field_name=field_name,
                )

    @classmethod
    def from_dict(cls, config: FormDefinitionDict, extra_rules: list[BaseRule] | None = None) -> "FormDefinition":
        return cls(config, extra_rules)

    @property
    def step_names(self) -> list[str]:
        return [step["name"] for step in self.step_definitions]

    @property
    def step_fields(self) -> list[list[str]]:
        return [list(step["required_fields"]) for step in self.step_definitions]

    @property
    def fields(self) -> list[str]:
        """Every field with a default or a rule."""
        names = list(self.defaults)
        for name in self.rule_set.fields:
            if name not in names:
                names.append(name)
        return names

    def build_steps(self) -> list[Step]:
        """Fresh step objects for a new session."""
        return [Step.from_dict(index, step) for index, step in enumerate(self.step_definitions)]

    def initial_data(self, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """Defaults overlaid with supplied initial data."""
        data = deepcopy(self.defaults)
        data.update(deepcopy(overrides or {}))
        return data

    def autosave_key_for(self, entity_id: str | None) -> str | None:
        """Resolve the auto-save key template for an entity."""
        if not self.autosave_key:
            return None
        return self.autosave_key.format(entity_id=entity_id or "new")

    def to_dict(self) -> dict[str, Any]:
        """Serialize definition, including code-defined rules by name."""
        rules = self.rule_set.to_dict()
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "multi_step": self.multi_step,
            "defaults": deepcopy(self.defaults),
            "steps": deepcopy(self.step_definitions),
            "rules": rules["rules"],
            "form_rules": rules["form_rules"],
            "security_checks": dict(self.security_checks),
            "reason_field": self.reason_field,
            "autosave_key": self.autosave_key,
        }

    def __repr__(self) -> str:
        return f"FormDefinition(name={self.name!r}, steps={self.step_names!r})"
