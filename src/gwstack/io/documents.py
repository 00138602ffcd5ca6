"""
Document loading

YAML and JSON documents (Gateway inputs, builder configurations) are parsed
and validated straight into their pydantic model. Every failure surfaces as a
``ConfigurationLoadError`` that names the offending file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..exceptions import ConfigurationLoadError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_yaml = YAML(typ="safe")


def _parse(file_path: Path) -> object:
    suffix = file_path.suffix.lower()
    text = file_path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        return _yaml.load(text)
    if suffix == ".json":
        return json.loads(text)
    raise ConfigurationLoadError(
        str(file_path), f"unsupported extension '{file_path.suffix}' (use .yaml, .yml or .json)"
    )


def load_document(path: str | Path, model: type[ModelT]) -> ModelT:
    """
    Parse ``path`` and validate it as ``model``.

    An empty document validates as an empty mapping, so models whose fields
    all have defaults load from an empty file.

    Raises:
        ConfigurationLoadError: If the file is missing, cannot be parsed, is
            not a mapping, or does not validate.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigurationLoadError(str(file_path), "file not found")

    try:
        data = _parse(file_path)
    except (YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationLoadError(str(file_path), f"cannot parse: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationLoadError(str(file_path), "top-level object must be a mapping")

    try:
        document = model.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationLoadError(
            str(file_path), f"invalid {model.__name__}: {exc}"
        ) from exc
    logger.debug("Loaded %s from %s", model.__name__, file_path.name)
    return document
