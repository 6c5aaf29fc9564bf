"""
Dataset loading.

A dataset is a named vertical with a fixed URL list. The batch layer only
depends on the DatasetLoader protocol; JsonDatasetLoader reads
`<datasets_path>/<key>.json` files.
"""

import json
import re
from pathlib import Path
from typing import Protocol

from pydantic import Field, ValidationError, field_validator

from eei.core.exceptions import InputError
from eei.core.models import BaseSchema

_KEY_PATTERN = re.compile(r"[^a-z0-9-]")


class Dataset(BaseSchema):
    key: str
    vertical: str
    description: str = ""
    urls: list[str] = Field(min_length=1)

    @field_validator("urls")
    @classmethod
    def strip_urls(cls, v: list[str]) -> list[str]:
        urls = [u.strip() for u in v if isinstance(u, str) and u.strip()]
        if not urls:
            raise ValueError("Dataset has no URLs")
        return urls


class DatasetLoader(Protocol):
    def load(self, key: str) -> Dataset: ...


def sanitize_key(key: str | None) -> str:
    """Lowercase and drop everything except a-z, 0-9 and '-'."""
    cleaned = _KEY_PATTERN.sub("", (key or "").strip().lower())
    if not cleaned:
        raise InputError("Missing dataset key")
    return cleaned


class JsonDatasetLoader:
    """Loads datasets from a directory of JSON files."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def load(self, key: str) -> Dataset:
        """
        Raises:
            InputError: unknown key, unreadable file or empty URL list
        """
        safe = sanitize_key(key)
        path = self.root / f"{safe}.json"
        if not path.is_file():
            raise InputError(f"Dataset not found: {safe}", details={"dataset": safe})

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InputError(f"Dataset unreadable: {safe}", details={"dataset": safe}) from e

        if not isinstance(payload, dict):
            raise InputError(f"Dataset malformed: {safe}", details={"dataset": safe})

        try:
            return Dataset(
                key=safe,
                vertical=payload.get("vertical") or safe,
                description=payload.get("description") or "",
                urls=payload.get("urls") or [],
            )
        except ValidationError as e:
            raise InputError(f"Dataset has no URLs: {safe}", details={"dataset": safe}) from e
