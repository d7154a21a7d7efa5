"""Storage utilities for JSON records and managed files."""

import hashlib
import json
import shutil
from pathlib import Path
from typing import TypeVar, Type
from pydantic import BaseModel
from datetime import datetime


T = TypeVar('T', bound=BaseModel)


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""

    def default(self, obj: object) -> str:
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


def read_json(path: Path) -> dict:
    """Read a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON object.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_json(path: Path, data: dict | BaseModel) -> None:
    """Write a JSON file.

    Args:
        path: Path to the JSON file.
        data: Dict or Pydantic model to write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, cls=DateTimeEncoder)
        f.write('\n')


def read_json_typed(path: Path, model: Type[T]) -> T:
    """Read a JSON file and parse it into a Pydantic model."""
    return model.model_validate(read_json(path))


def sha256_bytes(data: bytes) -> str:
    """Hex sha256 of a byte string."""
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(path: Path) -> str:
    """Compute sha256 hash of file contents."""
    with open(path, 'rb') as f:
        return sha256_bytes(f.read())


def copy_file(src: Path, dest: Path) -> None:
    """Copy a file, creating parent directories as needed."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)


def write_bytes(dest: Path, data: bytes) -> None:
    """Write bytes to a file, creating parent directories as needed."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)
