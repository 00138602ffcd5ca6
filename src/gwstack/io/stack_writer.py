"""YAML export of a built Stack."""

import logging
import sys
from pathlib import Path
from typing import Any, TextIO

from ruamel.yaml import YAML

from ..core.stack import Stack

logger = logging.getLogger(__name__)

_TOP_LEVEL_ORDER = ["schemaVersion", "id", "lifecycle", "addons", "resources"]


class StackWriter:
    """Serialize a Stack (plus build metadata) as a YAML document."""

    def __init__(self) -> None:
        self._yaml = YAML()
        self._configure_yaml()

    def _configure_yaml(self) -> None:
        self._yaml.indent(mapping=2, sequence=4, offset=2)
        self._yaml.default_flow_style = False
        self._yaml.allow_unicode = True
        self._yaml.width = 4096

        def represent_ordered_dict(dumper, data):
            if "schemaVersion" in data:
                ordered = {k: data[k] for k in _TOP_LEVEL_ORDER if k in data}
                ordered.update((k, v) for k, v in data.items() if k not in ordered)
                return dumper.represent_mapping("tag:yaml.org,2002:map", ordered)
            return dumper.represent_mapping("tag:yaml.org,2002:map", data)

        self._yaml.representer.add_representer(dict, represent_ordered_dict)

    def document(self, stack: Stack, **extra: Any) -> dict[str, Any]:
        data = stack.to_dict()
        data.update({k: v for k, v in extra.items() if v is not None})
        return data

    def write(self, stack: Stack, output: str | Path | TextIO | None = None, **extra: Any) -> None:
        data = self.document(stack, **extra)
        if output is None:
            self._yaml.dump(data, sys.stdout)
            return
        if isinstance(output, (str, Path)):
            path = Path(output)
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as fh:
                self._yaml.dump(data, fh)
            logger.info("Stack written to %s (%d resources)", path, len(stack))
            return
        self._yaml.dump(data, output)
