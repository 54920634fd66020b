"""Node.js package.json decoding."""

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any

from .errors import ManifestError
from .models import Manifest


def decode_content(payload: Mapping[str, Any]) -> str:
    """Decode a repository contents response into text.

    Args:
        payload: The contents API response for a single file

    Returns:
        The file content as UTF-8 text
    """
    if payload.get("type") != "file" or payload.get("encoding") != "base64":
        raise ManifestError("Unexpected repo content response")

    try:
        return base64.b64decode(payload.get("content") or "").decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ManifestError(f"Could not decode repo content: {e}")


def parse_package_json(content: str) -> Manifest:
    """Parse package.json content into a Manifest.

    Args:
        content: The package.json file content

    Returns:
        Parsed manifest document
    """
    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"package.json is not valid JSON: {e}")

    if not isinstance(document, dict):
        raise ManifestError("package.json must contain a JSON object")
    return document
