"""FileSystemAdapter - Adapter for calculation input documents and result files.

Provides file-based input/output with:
- YAML or JSON input documents, JSON output
- Conversion of an input document into a calculation request
- Timestamped JSON result files
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from src.core.domain.errors import ConfigurationError

if TYPE_CHECKING:
    from src.core.services.exposure_calculation_service import (
        CalculationType,
        ExposureCalculationRequest,
        ExposureCalculationResponse,
    )

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


class FileSystemAdapter:
    """Adapter for file-based calculation input and output.

    Input documents may be YAML or JSON; results are always written as JSON.
    """

    def __init__(self, base_path: str | Path | None = None) -> None:
        """Initialize FileSystemAdapter.

        Args:
            base_path: Base directory for relative paths (defaults to cwd)
        """
        self._base_path = Path(base_path) if base_path else Path.cwd()

    def _resolve_path(self, path: str | Path) -> Path:
        """Resolve path relative to base path."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self._base_path / p

    def load_yaml(self, path: str | Path) -> dict[str, Any]:
        """Load a document from a YAML file.

        Args:
            path: Path to YAML file (absolute or relative to base_path)

        Returns:
            Dictionary with document contents

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If YAML is invalid or the root is not a mapping
        """
        full_path = self._resolve_path(path)

        if not full_path.exists():
            raise FileNotFoundError(f"Input file not found: {full_path}")

        try:
            with open(full_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)

            if data is None:
                return {}

            if not isinstance(data, dict):
                raise ConfigurationError(str(path), "Root element must be a dictionary")

            return data

        except yaml.YAMLError as e:
            raise ConfigurationError(str(path), f"Invalid YAML: {e}") from e

    def load_json(self, path: str | Path) -> dict[str, Any]:
        """Load a document from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If JSON is invalid or the root is not a mapping
        """
        full_path = self._resolve_path(path)

        if not full_path.exists():
            raise FileNotFoundError(f"Input file not found: {full_path}")

        try:
            with open(full_path, encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise ConfigurationError(str(path), "Root element must be a dictionary")

            return data

        except json.JSONDecodeError as e:
            raise ConfigurationError(str(path), f"Invalid JSON: {e}") from e

    def save_json(
        self,
        path: str | Path,
        data: dict[str, Any],
        *,
        create_dirs: bool = True,
        indent: int = 2,
    ) -> None:
        """Save a document to a JSON file.

        Raises:
            ConfigurationError: If data is not a dictionary
        """
        if not isinstance(data, dict):
            raise ConfigurationError(str(path), "Data must be a dictionary")

        full_path = self._resolve_path(path)

        if create_dirs:
            full_path.parent.mkdir(parents=True, exist_ok=True)

        with open(full_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, default=str)

    def load_document(self, path: str | Path) -> dict[str, Any]:
        """Load YAML or JSON by file suffix (JSON unless .yaml/.yml)."""
        if Path(path).suffix.lower() in YAML_SUFFIXES:
            return self.load_yaml(path)
        return self.load_json(path)

    def load_calculation_input(
        self,
        path: str | Path,
        calculation_type: "CalculationType",
    ) -> "ExposureCalculationRequest":
        """Load an input document and convert it into a calculation request.

        Args:
            path: YAML or JSON input document
            calculation_type: Engine the document is for

        Returns:
            ExposureCalculationRequest built from the document

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If the document cannot be parsed
            InvalidInputError: If a section is malformed
        """
        from src.core.services.exposure_calculation_service import ExposureCalculationRequest

        data = self.load_document(path)
        logger.debug("Loaded %s input from %s", calculation_type.value, path)
        return ExposureCalculationRequest.from_dict(calculation_type, data)

    def save_result(
        self,
        output_dir: str | Path,
        response: "ExposureCalculationResponse",
    ) -> Path:
        """Write a response to ``<output_dir>/<type>_<timestamp>.json``.

        Returns:
            Path of the written file
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        path = self._resolve_path(output_dir) / (
            f"{response.calculation_type.value}_{timestamp}.json"
        )
        self.save_json(path, response.to_dict())
        logger.info("Saved %s result to %s", response.calculation_type.value, path)
        return path
