"""Validate manifest.json against its JSON schema."""

from __future__ import annotations

import json
import logging as py_logging
from pathlib import Path
from typing import Any

import jsonschema
from referencing import Registry, Resource
from referencing.exceptions import NoSuchResource, Unresolvable
from referencing.jsonschema import DRAFT202012

from wslops.errors import ExitCode, WslOpsError

logger = py_logging.getLogger(__name__)

DEFAULT_MANIFEST_PATH = Path("manifest.json")
DEFAULT_SCHEMA_PATH = Path("schema/manifest.schema.json")


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise WslOpsError(
            f"Cannot read {path}",
            code=ExitCode.CONFIG_ERROR,
            hint=str(exc),
        ) from exc
    except json.JSONDecodeError as exc:
        raise WslOpsError(
            f"{path} is not valid JSON",
            code=ExitCode.CONFIG_ERROR,
            hint=f"line {exc.lineno} column {exc.colno}: {exc.msg}",
        ) from exc


def _file_retriever(schema_dir: Path):
    def retrieve(uri: str) -> Resource:
        # Only local file: references are resolved; no network fetches.
        if not uri.startswith("file:"):
            raise NoSuchResource(ref=uri)
        # Absolute paths stay absolute; relative ones are taken from the schema folder.
        candidate = (schema_dir / uri[len("file:") :]).resolve()
        if not candidate.is_file():
            raise NoSuchResource(ref=uri)
        contents = json.loads(candidate.read_text(encoding="utf-8"))
        return Resource.from_contents(contents, default_specification=DRAFT202012)

    return retrieve


def _error_path(error: jsonschema.ValidationError) -> str:
    if not error.absolute_path:
        return "(root)"
    return "/" + "/".join(str(part) for part in error.absolute_path)


def validate_manifest(
    manifest_path: str | Path = DEFAULT_MANIFEST_PATH,
    schema_path: str | Path = DEFAULT_SCHEMA_PATH,
) -> list[str]:
    """Return a list of "path: message" strings, empty when the manifest is valid."""
    manifest_file = Path(manifest_path)
    schema_file = Path(schema_path)
    schema = _read_json(schema_file)
    data = _read_json(manifest_file)

    registry: Registry = Registry(retrieve=_file_retriever(schema_file.parent.resolve()))
    try:
        jsonschema.Draft202012Validator.check_schema(schema)
        validator = jsonschema.Draft202012Validator(
            schema,
            registry=registry,
            format_checker=jsonschema.Draft202012Validator.FORMAT_CHECKER,
        )
        errors = sorted(validator.iter_errors(data), key=_error_path)
    except jsonschema.SchemaError as exc:
        raise WslOpsError(
            f"Schema {schema_file} is invalid",
            code=ExitCode.CONFIG_ERROR,
            hint=exc.message,
        ) from exc
    except Unresolvable as exc:
        raise WslOpsError(
            f"Unable to load schema reference from {schema_file}",
            code=ExitCode.CONFIG_ERROR,
            hint=str(exc),
        ) from exc

    messages = [f"{_error_path(error)}: {error.message}" for error in errors]
    logger.debug("Validated %s against %s: %s errors", manifest_file, schema_file, len(messages))
    return messages
