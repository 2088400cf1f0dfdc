"""Saved generation requests.

Layer 4: Workflows - Public entry points.

A saved model is its GenerationRequest, never its block array: the blocks
are exactly reproducible from the request, so the file stays a few hundred
bytes whatever the grid size.

File layout (YAML or JSON):

    format: blocksmith.request
    version: 1
    fingerprint: 9f2c...
    request:
      grid: {origin: [0, 0, 0], cell_size: [10, 10, 10], counts: [40, 40, 20]}
      pattern: porphyry_ore
      parameters: {}
      seed: 42
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

import yaml

from blocksmith.objects.request import GenerationRequest
from blocksmith.utils.errors import raise_parameter_error, raise_validation_error

logger = logging.getLogger(__name__)

FILE_FORMAT = "blocksmith.request"
FILE_VERSION = 1

_SUFFIXES = (".yaml", ".yml", ".json")


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in _SUFFIXES:
        raise_parameter_error(
            "path",
            str(path),
            valid_values=list(_SUFFIXES),
            constraint="unsupported request file format",
        )
    return suffix


def request_document(request: GenerationRequest) -> dict[str, Any]:
    """The document written by ``save_request``."""
    return {
        "format": FILE_FORMAT,
        "version": FILE_VERSION,
        "fingerprint": request.fingerprint(),
        "request": request.to_dict(),
    }


def save_request(request: GenerationRequest, path: Union[str, Path]) -> Path:
    """Save a generation request to a YAML or JSON file.

    Args:
        request: Request to save.
        path: Destination ending in ``.yaml``, ``.yml`` or ``.json``.

    Returns:
        The path written.
    """
    path = Path(path)
    suffix = _check_suffix(path)
    document = request_document(request)
    with open(path, "w") as f:
        if suffix == ".json":
            json.dump(document, f, indent=2)
        else:
            yaml.safe_dump(document, f, sort_keys=False)
    logger.info(f"Saved {request.pattern.value} request to {path}")
    return path


def load_request(path: Union[str, Path]) -> GenerationRequest:
    """Load a generation request saved by ``save_request``.

    A bare request mapping (grid, pattern, parameters, seed) is accepted
    too.

    Raises:
        FileNotFoundError: If the file does not exist.
        DataValidationError: If the file is not a readable request document.
        ParameterError: If a request field holds an invalid value.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Request file not found: {path}")
    suffix = _check_suffix(path)

    with open(path) as f:
        try:
            document = json.load(f) if suffix == ".json" else yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise_validation_error(
                f"Could not parse request file {path}: {e}",
                expected="YAML or JSON mapping",
            )

    if not isinstance(document, dict):
        raise_validation_error(
            f"Request file {path} does not contain a mapping",
            received=type(document).__name__,
        )

    if "request" in document:
        if document.get("format", FILE_FORMAT) != FILE_FORMAT:
            raise_validation_error(
                f"Unknown document format in {path}",
                expected=FILE_FORMAT,
                received=str(document.get("format")),
            )
        version = document.get("version", FILE_VERSION)
        if version != FILE_VERSION:
            raise_validation_error(
                f"Unsupported request file version in {path}",
                expected=str(FILE_VERSION),
                received=str(version),
            )
        body = document["request"]
    else:
        body = document

    request = GenerationRequest.from_dict(body)

    recorded = document.get("fingerprint")
    if recorded is not None and recorded != request.fingerprint():
        logger.warning(
            f"Fingerprint in {path} does not match its request; the file was edited"
        )
    logger.info(f"Loaded {request.pattern.value} request from {path}")
    return request
