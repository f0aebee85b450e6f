"""
Form definition loader with structured error reporting.

The loader reads YAML or JSON definitions (or resolves a built-in form by
name), validates their structure with the pydantic definition models and
builds a FormDefinition. Every failure is collected as a LoadError on a
FormLoadResult instead of being raised.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from formgate.exceptions import LoaderError, RuleDefinitionError
from formgate.form import FormDefinition
from formgate.forms import FORMS
from formgate.models import (
    FileFormat,
    FormLoadResult,
    LoadError,
    LoadErrorType,
    LoadResultStatus,
)

logger = logging.getLogger(__name__)

_SUFFIX_FORMATS = {
    ".yaml": FileFormat.YAML,
    ".yml": FileFormat.YAML,
    ".json": FileFormat.JSON,
}


def detect_file_format(file_path: Path) -> FileFormat | None:
    return _SUFFIX_FORMATS.get(file_path.suffix.lower())


def read_data_file(file_path: Path) -> Any:
    """
    Parse a YAML or JSON file.

    Raises:
        LoaderError: If the file is missing, unreadable or malformed
    """
    file_format = detect_file_format(file_path)
    if file_format is None:
        raise LoaderError(f"Unsupported file format: {file_path.suffix}", file_path=str(file_path))
    if not file_path.exists():
        raise LoaderError(f"File not found: {file_path}", file_path=str(file_path))

    try:
        with open(file_path, encoding="utf-8") as f:
            if file_format == FileFormat.YAML:
                return YAML(typ="safe", pure=True).load(f)
            return json.load(f)
    except json.JSONDecodeError as e:
        raise LoaderError(
            f"JSON parsing failed: {e.msg}", file_path=str(file_path), line_number=e.lineno
        ) from e
    except YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise LoaderError(
            f"YAML parsing failed: {e}",
            file_path=str(file_path),
            line_number=mark.line + 1 if mark is not None else None,
        ) from e
    except (OSError, UnicodeDecodeError) as e:
        raise LoaderError(f"Failed to read file: {e}", file_path=str(file_path)) from e


def load_data_file(file_path: str | Path) -> Any:
    """Read a snapshot or event file (YAML or JSON)."""
    return read_data_file(Path(file_path))


class FormLoader:
    """
    Form loader with unified error handling and result reporting.

    ``load`` accepts either the name of a built-in form or a path to a
    definition file.
    """

    def load(self, source: str | Path, **options) -> FormLoadResult:
        """
        Load a form from a built-in name or a file.

        Args:
            source: Built-in form name or path to a YAML/JSON definition
            **options: Keyword options passed to a built-in form builder

        Returns:
            FormLoadResult with status, definition (if successful) and errors
        """
        source_str = str(source)
        if source_str in FORMS:
            return self._load_builtin(source_str, options)
        return self._load_from_file(Path(source_str))

    def _load_builtin(self, name: str, options: dict[str, Any]) -> FormLoadResult:
        try:
            definition = FORMS[name](**options)
        except (TypeError, ValueError) as e:
            return FormLoadResult(
                status=LoadResultStatus.VALIDATION_ERROR,
                definition=None,
                errors=[LoadError(LoadErrorType.INVALID_RULE_DEFINITION, str(e), {"form": name})],
                source=name,
            )
        return FormLoadResult(status=LoadResultStatus.SUCCESS, definition=definition, source=name)

    def _load_from_file(self, file_path: Path) -> FormLoadResult:
        source = str(file_path)

        # Phase 1: File access
        if not file_path.exists():
            return self._failed(
                LoadResultStatus.FILE_ERROR,
                LoadError(LoadErrorType.FILE_NOT_FOUND, f"Form file not found: {file_path}", {"path": source}),
                source,
            )
        if detect_file_format(file_path) is None:
            return self._failed(
                LoadResultStatus.PARSE_ERROR,
                LoadError(
                    LoadErrorType.INVALID_FORMAT,
                    f"Unsupported file format: {file_path.suffix}",
                    {"path": source, "suffix": file_path.suffix},
                ),
                source,
            )

        # Phase 2: Parsing
        try:
            raw_data = read_data_file(file_path)
        except LoaderError as e:
            error_type = self._parse_error_type(e)
            context: dict[str, Any] = {"path": source}
            if e.line_number is not None:
                context["line"] = e.line_number
            status = (
                LoadResultStatus.PARSE_ERROR
                if error_type in (LoadErrorType.YAML_PARSE_ERROR, LoadErrorType.JSON_PARSE_ERROR)
                else LoadResultStatus.FILE_ERROR
            )
            return self._failed(status, LoadError(error_type, str(e), context), source)

        # Phase 3: Structure extraction
        config = self._extract_form_config(raw_data)
        if config is None:
            return self._failed(
                LoadResultStatus.STRUCTURE_ERROR,
                LoadError(
                    LoadErrorType.STRUCTURE_ERROR,
                    "Definition must be a mapping, optionally nested under a 'form' key",
                    {"path": source, "found": type(raw_data).__name__},
                ),
                source,
            )

        # Phase 4: Schema validation and instantiation
        try:
            definition = FormDefinition(config)
        except ValidationError as e:
            errors = [
                LoadError(
                    LoadErrorType.STRUCTURE_ERROR,
                    error["msg"],
                    {"path": source, "location": ".".join(str(part) for part in error["loc"])},
                )
                for error in e.errors()
            ]
            return FormLoadResult(LoadResultStatus.VALIDATION_ERROR, None, errors, source)
        except RuleDefinitionError as e:
            context = {"path": source}
            if e.field_name:
                context["field"] = e.field_name
            if e.rule_type:
                context["rule_type"] = e.rule_type
            return self._failed(
                LoadResultStatus.VALIDATION_ERROR,
                LoadError(LoadErrorType.INVALID_RULE_DEFINITION, str(e), context),
                source,
            )

        logger.debug(f"Loaded form '{definition.name}' from {source}")
        return FormLoadResult(status=LoadResultStatus.SUCCESS, definition=definition, source=source)

    @staticmethod
    def _extract_form_config(raw_data: Any) -> dict[str, Any] | None:
        if not isinstance(raw_data, dict):
            return None
        if "form" in raw_data and isinstance(raw_data["form"], dict):
            return raw_data["form"]
        return raw_data

    @staticmethod
    def _parse_error_type(error: LoaderError) -> LoadErrorType:
        message = str(error)
        if message.startswith("JSON parsing failed"):
            return LoadErrorType.JSON_PARSE_ERROR
        if message.startswith("YAML parsing failed"):
            return LoadErrorType.YAML_PARSE_ERROR
        if isinstance(error.__cause__, PermissionError):
            return LoadErrorType.FILE_PERMISSION_DENIED
        return LoadErrorType.FILE_ENCODING_ERROR

    @staticmethod
    def _failed(status: LoadResultStatus, error: LoadError, source: str) -> FormLoadResult:
        return FormLoadResult(status=status, definition=None, errors=[error], source=source)


def load_form(source: str | Path, **options) -> FormLoadResult:
    """Convenience wrapper around FormLoader.load."""
    return FormLoader().load(source, **options)


def load_form_or_raise(source: str | Path, **options) -> FormDefinition:
    """
    Load a form, raising instead of returning errors.

    Raises:
        LoaderError: If the form cannot be loaded
    """
    result = load_form(source, **options)
    if not result.success:
        first = result.errors[0] if result.errors else None
        raise LoaderError(
            result.get_error_summary(),
            file_path=result.source,
            line_number=first.context.get("line") if first else None,
            context={"errors": [error.to_dict() for error in result.errors]},
        )
    return result.definition
