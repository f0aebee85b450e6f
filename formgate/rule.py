"""Rule types and validation logic for formgate."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

from formgate.exceptions import RuleDefinitionError
from formgate.models import (
    ConditionalRuleDict,
    ErrorCategory,
    ErrorSeverity,
    OutcomeDict,
    RuleDefinition,
    RuleMetaData,
    RuleType,
    SpecialRuleType,
    is_empty,
)
from formgate.snapshot import FormSnapshot


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of validating one field against its rules.

    Attributes:
        is_valid: Whether validation passed
        field: Field the outcome belongs to
        message: Human-readable error message (always set when invalid)
        category: Error category tagged on the rule that produced the outcome
        severity: Blocking weight tagged on the rule
        rule_type: Type of rule that produced the outcome
        actual_value: Value that was validated
        context: Contextual information (e.g. "then branch")
    """

    is_valid: bool
    field: str
    message: str = ""
    category: ErrorCategory | None = None
    severity: ErrorSeverity | None = None
    rule_type: RuleType | None = None
    actual_value: Any = None
    context: str = ""

    def __post_init__(self):
        if not self.is_valid and not self.message:
            raise ValueError(f"Failed outcome for '{self.field}' must carry a message")

    @classmethod
    def ok(cls, field: str, value: Any = None, context: str = "") -> "ValidationOutcome":
        """Build a passing outcome."""
        return cls(is_valid=True, field=field, actual_value=value, context=context)

    @property
    def blocks_submission(self) -> bool:
        """Whether this outcome prevents the form from being submitted."""
        if self.is_valid:
            return False
        return self.severity is None or self.severity.blocks_submission

    def to_dict(self) -> OutcomeDict:
        """Convert outcome to JSON-serializable dictionary."""
        return OutcomeDict(
            field=self.field,
            is_valid=self.is_valid,
            message=self.message,
            category=self.category.value if self.category else "",
            severity=self.severity.value if self.severity else "",
            rule_type=self.rule_type.value if self.rule_type else "",
        )


class BaseRule(ABC):
    """
    Abstract base class for all rules.

    Rules are pure: ``validate`` inspects the value and the read-only snapshot
    and returns a ValidationOutcome without keeping any state between calls.

    Attributes:
        field: Field the rule reports its outcome under
        rule_type: Type of validation performed
        category: Static error category reported on failure
        severity: Static severity reported on failure
    """

    field: str
    rule_type: RuleType
    category: ErrorCategory
    severity: ErrorSeverity

    @abstractmethod
    def validate(self, value: Any, snapshot: FormSnapshot) -> ValidationOutcome:
        """
        Validate a value in the context of a snapshot.

        Args:
            value: Value of ``field`` being validated
            snapshot: Read-only view of the whole form

        Returns:
            ValidationOutcome for ``field``
        """
        pass

    @property
    @abstractmethod
    def reads(self) -> set[str]:
        """Every snapshot field this rule inspects, including its own."""
        pass

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Convert rule to dictionary representation."""
        pass

    def _fail(self, value: Any, message: str, context: str = "") -> ValidationOutcome:
        return ValidationOutcome(
            is_valid=False,
            field=self.field,
            message=message,
            category=self.category,
            severity=self.severity,
            rule_type=self.rule_type,
            actual_value=value,
            context=context,
        )


def _parse_tags(
    definition: dict[str, Any], rule_type: RuleType
) -> tuple[ErrorCategory, ErrorSeverity]:
    default_category, default_severity = rule_type.default_tags()
    try:
        category = ErrorCategory(definition.get("category") or default_category)
        severity = ErrorSeverity(definition.get("severity") or default_severity)
    except ValueError as e:
        raise RuleDefinitionError(
            f"Invalid category or severity: {e}",
            field_name=definition.get("field"),
            rule_type=rule_type.value,
        ) from e
    return category, severity


class FieldRule(BaseRule):
    """
    Data-driven rule validating a field with one of the built-in RuleTypes.
    """

    expected_value: Any
    metadata: RuleMetaData
    custom_error_message: str | None

    def __init__(self, config: dict[str, Any]) -> None:
        rule_type_value = config.get("type")
        try:
            self.rule_type = (
                rule_type_value
                if isinstance(rule_type_value, RuleType)
                else RuleType(str(rule_type_value).lower())
            )
        except ValueError as e:
            raise RuleDefinitionError(
                f"Unknown rule type '{rule_type_value}'",
                field_name=config.get("field"),
                rule_type=str(rule_type_value),
            ) from e
        if self.rule_type in (RuleType.PREDICATE, RuleType.CONDITIONAL):
            raise RuleDefinitionError(
                f"Rule type '{self.rule_type.value}' cannot be declared as a field rule",
                field_name=config.get("field"),
                rule_type=self.rule_type.value,
            )

        field_name = config.get("field")
        if not field_name:
            raise RuleDefinitionError("Rule must name a field", rule_type=self.rule_type.value)
        self.field = field_name
        self.expected_value = config.get("expected_value")
        self.metadata = cast(RuleMetaData, dict(config.get("metadata") or {}))
        self.metadata["expected_value"] = self.expected_value
        self.custom_error_message = config.get("error_message")
        self.category, self.severity = _parse_tags(config, self.rule_type)

        if self.rule_type == RuleType.TIME_AFTER and not self.expected_value:
            raise RuleDefinitionError(
                "time_after rule requires the compared field as expected_value",
                field_name=self.field,
                rule_type=self.rule_type.value,
            )

    @property
    def reads(self) -> set[str]:
        return self.rule_type.reads(self.field, self.metadata)

    def validate(self, value: Any, snapshot: FormSnapshot) -> ValidationOutcome:
        if self.rule_type.validate(value, self.metadata, snapshot):
            return ValidationOutcome.ok(self.field, value)
        message = self.custom_error_message or self.rule_type.failure_message(
            self.field, value, self.metadata
        )
        return self._fail(value, message)

    def to_dict(self) -> dict[str, Any]:
        """Convert rule to JSON-serializable dictionary."""
        result: dict[str, Any] = {
            "type": self.rule_type.value,
            "field": self.field,
            "category": self.category.value,
            "severity": self.severity.value,
        }
        if self.expected_value is not None:
            result["expected_value"] = self.expected_value
        metadata = {k: v for k, v in self.metadata.items() if k != "expected_value"}
        if metadata:
            result["metadata"] = metadata
        if self.custom_error_message:
            result["error_message"] = self.custom_error_message
        return result


class ConditionalRule(BaseRule):
    """
    Rule that evaluates different rules based on runtime conditions.

    Implements if-then-else logic for validation:
    - IF condition: All rules in if_rules must pass (AND logic)
    - THEN branch: Evaluated if IF condition passes
    - ELSE branch: Evaluated if IF condition fails (optional)

    If the IF condition fails and no ELSE branch exists, the rule passes
    (the requirement is not applicable). The first failing branch rule
    supplies the outcome, so its category and severity are preserved.
    """

    rule_type = RuleType.CONDITIONAL

    def __init__(
        self,
        field: str,
        if_rules: list[BaseRule],
        then_rules: list[BaseRule],
        else_rules: list[BaseRule] | None = None,
    ):
        """
        Initialize ConditionalRule.

        Args:
            field: Field the outcome is reported under
            if_rules: Condition rules (all must pass for THEN to evaluate)
            then_rules: Rules to evaluate if condition passes
            else_rules: Rules to evaluate if condition fails (optional)

        Raises:
            RuleDefinitionError: If if_rules or then_rules are empty
        """
        if not if_rules:
            raise RuleDefinitionError("ConditionalRule must have at least one IF rule", field_name=field)
        if not then_rules:
            raise RuleDefinitionError("ConditionalRule must have at least one THEN rule", field_name=field)

        self.field = field
        self.if_rules = if_rules
        self.then_rules = then_rules
        self.else_rules = else_rules or []
        branch_rules = self.then_rules + self.else_rules
        self.category = branch_rules[0].category
        self.severity = branch_rules[0].severity

    @property
    def reads(self) -> set[str]:
        fields = {self.field}
        for rule in self.if_rules + self.then_rules + self.else_rules:
            fields |= rule.reads
        return fields

    def validate(self, value: Any, snapshot: FormSnapshot) -> ValidationOutcome:
        if self._first_failure(self.if_rules, value, snapshot) is None:
            failure = self._first_failure(self.then_rules, value, snapshot)
            context = "then branch"
        elif self.else_rules:
            failure = self._first_failure(self.else_rules, value, snapshot)
            context = "else branch"
        else:
            return ValidationOutcome.ok(self.field, value, context="condition not applicable")

        if failure is None:
            return ValidationOutcome.ok(self.field, value, context=context)
        return ValidationOutcome(
            is_valid=False,
            field=self.field,
            message=failure.message,
            category=failure.category,
            severity=failure.severity,
            rule_type=failure.rule_type,
            actual_value=value,
            context=context,
        )

    def _first_failure(
        self, rules: list[BaseRule], value: Any, snapshot: FormSnapshot
    ) -> ValidationOutcome | None:
        for rule in rules:
            rule_value = value if rule.field == self.field else snapshot.get_property(rule.field)
            outcome = rule.validate(rule_value, snapshot)
            if not outcome.is_valid:
                return outcome
        return None

    def to_dict(self) -> ConditionalRuleDict:
        """Convert ConditionalRule to dictionary representation."""
        result: ConditionalRuleDict = {
            "type": SpecialRuleType.CONDITIONAL.value,
            "field": self.field,
            "if": [rule.to_dict() for rule in self.if_rules],
            "then": [rule.to_dict() for rule in self.then_rules],
        }
        if self.else_rules:
            result["else"] = [rule.to_dict() for rule in self.else_rules]
        return result


class PredicateRule(BaseRule):
    """
    Rule backed by a Python callable, for capability checks that cannot be
    expressed as data (for example permission flags supplied by the host).
    """

    rule_type = RuleType.PREDICATE

    def __init__(
        self,
        field: str,
        predicate: Callable[[Any, FormSnapshot], bool],
        message: str,
        reads: set[str] | None = None,
        category: ErrorCategory = ErrorCategory.SECURITY,
        severity: ErrorSeverity = ErrorSeverity.CRITICAL,
        name: str | None = None,
    ):
        if not message:
            raise RuleDefinitionError("PredicateRule requires a failure message", field_name=field)
        self.field = field
        self.predicate = predicate
        self.message = message
        self._reads = set(reads or ()) | {field}
        self.category = category
        self.severity = severity
        self.name = name or getattr(predicate, "__name__", "predicate")

    @property
    def reads(self) -> set[str]:
        return set(self._reads)

    def validate(self, value: Any, snapshot: FormSnapshot) -> ValidationOutcome:
        if self.predicate(value, snapshot):
            return ValidationOutcome.ok(self.field, value)
        return self._fail(value, self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": RuleType.PREDICATE.value,
            "field": self.field,
            "name": self.name,
            "category": self.category.value,
            "severity": self.severity.value,
        }


class RuleFactory:
    """
    Factory for creating rule instances from definition dictionaries.

    Supports a bare string shorthand (``"required"``), the ``required_if``
    shorthand for conditional requirements, full ``type`` definitions and
    nested ``conditional`` rules.
    """

    @classmethod
    def create(cls, rule_definition: RuleDefinition | str, field: str | None = None) -> BaseRule:
        """
        Create appropriate rule type from configuration.

        Args:
            rule_definition: Rule configuration dictionary or bare type name
            field: Field the rule belongs to when the definition omits it

        Returns:
            BaseRule instance (FieldRule or ConditionalRule)

        Raises:
            RuleDefinitionError: If configuration is invalid
        """
        if isinstance(rule_definition, str):
            rule_definition = {"type": rule_definition}
        if not isinstance(rule_definition, dict):
            raise RuleDefinitionError(
                f"Invalid rule definition format: {rule_definition!r}", field_name=field
            )

        definition = dict(rule_definition)
        if field and not definition.get("field"):
            definition["field"] = field

        if SpecialRuleType.REQUIRED_IF.value in definition:
            return cls._create_required_if(definition)

        rule_type = str(definition.get("type", "")).lower()
        if rule_type == SpecialRuleType.CONDITIONAL:
            return cls._create_conditional(definition)

        if not rule_type:
            raise RuleDefinitionError("Invalid rule definition format", field_name=definition.get("field"))

        return FieldRule(definition)

    @classmethod
    def _create_required_if(cls, definition: dict[str, Any]) -> ConditionalRule:
        """
        Expand ``required_if`` into a conditional requirement.

        Args:
            definition: Configuration with ``field`` and
                ``required_if: {field: <other>, in: [values]}``

        Returns:
            ConditionalRule whose THEN branch is a dependency-tagged required rule
        """
        condition = definition[SpecialRuleType.REQUIRED_IF.value]
        field_name = definition.get("field")
        if not field_name:
            raise RuleDefinitionError("required_if rule must name a field")
        if not isinstance(condition, dict) or "field" not in condition or "in" not in condition:
            raise RuleDefinitionError(
                "required_if needs 'field' and 'in' keys", field_name=field_name
            )

        values = list(condition["in"])
        if_rules: list[BaseRule] = [FieldRule({
            "type": RuleType.IN_LIST,
            "field": condition["field"],
            "expected_value": values,
        })]
        # in_list passes empty values, so an unset trigger field needs its own check
        if not any(is_empty(value) for value in values):
            if_rules.insert(0, FieldRule({"type": RuleType.REQUIRED, "field": condition["field"]}))
        required: dict[str, Any] = {
            "type": RuleType.REQUIRED,
            "field": field_name,
            "category": definition.get("category", ErrorCategory.DEPENDENCY),
            "severity": definition.get("severity", ErrorSeverity.HIGH),
        }
        if "error_message" in definition:
            required["error_message"] = definition["error_message"]
        return ConditionalRule(field_name, if_rules, [FieldRule(required)])

    @classmethod
    def _create_conditional(cls, definition: dict[str, Any]) -> ConditionalRule:
        """
        Create ConditionalRule from configuration.

        Args:
            definition: Configuration with 'if', 'then', 'else' lists

        Returns:
            ConditionalRule instance

        Raises:
            RuleDefinitionError: If required fields are missing or invalid
        """
        field_name = definition.get("field")
        if "if" not in definition:
            raise RuleDefinitionError("ConditionalRule requires 'if' field", field_name=field_name)
        if "then" not in definition:
            raise RuleDefinitionError("ConditionalRule requires 'then' field", field_name=field_name)

        # Nested rules without their own field apply to the conditional's field
        if_rules = [cls.create(rule, field_name) for rule in definition["if"]]
        then_rules = [cls.create(rule, field_name) for rule in definition["then"]]
        else_rules = [cls.create(rule, field_name) for rule in definition.get("else", [])]

        if not field_name:
            field_name = then_rules[0].field if then_rules else ""
        return ConditionalRule(field_name, if_rules, then_rules, else_rules or None)


class RuleSet:
    """
    Registry of field rules and whole-form (cross-field) rules.

    Field rules run before cross-field rules targeting the same field; the
    first failing rule is the field's outcome.
    """

    def __init__(
        self,
        field_rules: dict[str, list[BaseRule]] | None = None,
        form_rules: list[BaseRule] | None = None,
    ):
        self._field_rules: dict[str, list[BaseRule]] = {
            name: list(rules) for name, rules in (field_rules or {}).items()
        }
        self._form_rules: list[BaseRule] = list(form_rules or [])

    @classmethod
    def from_dict(
        cls,
        rules: dict[str, list[RuleDefinition | str]],
        form_rules: list[RuleDefinition] | None = None,
    ) -> "RuleSet":
        """Build a rule set from definition dictionaries."""
        field_rules = {
            name: [RuleFactory.create(rule, name) for rule in definitions]
            for name, definitions in rules.items()
        }
        cross_rules = [RuleFactory.create(rule) for rule in (form_rules or [])]
        return cls(field_rules, cross_rules)

    def add_rule(self, rule: BaseRule, cross_field: bool = False) -> None:
        """Register an additional rule."""
        if cross_field:
            self._form_rules.append(rule)
        else:
            self._field_rules.setdefault(rule.field, []).append(rule)

    def field_rules(self, field: str) -> list[BaseRule]:
        """Rules declared directly on ``field``."""
        return list(self._field_rules.get(field, []))

    def cross_field_rules(self, field: str) -> list[BaseRule]:
        """Whole-form rules reporting under ``field``."""
        return [rule for rule in self._form_rules if rule.field == field]

    def rules_for(self, field: str) -> list[BaseRule]:
        """All rules for ``field`` in evaluation order."""
        return self.field_rules(field) + self.cross_field_rules(field)

    def reads_for(self, field: str) -> set[str]:
        """Every field whose value can change the outcome for ``field``."""
        fields = {field}
        for rule in self.rules_for(field):
            fields |= rule.reads
        return fields

    @property
    def fields(self) -> list[str]:
        """Fields with at least one rule, in declaration order."""
        names = list(self._field_rules)
        for rule in self._form_rules:
            if rule.field not in names:
                names.append(rule.field)
        return names

    @property
    def form_rules(self) -> list[BaseRule]:
        return list(self._form_rules)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the rule set."""
        return {
            "rules": {
                name: [rule.to_dict() for rule in rules]
                for name, rules in self._field_rules.items()
            },
            "form_rules": [rule.to_dict() for rule in self._form_rules],
        }
