"""JSON_Adapter for reading token dumps.

Extractor の出力（トークンレコードのJSON配列）を RawToken に変換します。

対応形式:
    - [{"name": ..., "value": ..., "type": ..., "source": ..., "metadata": {...}}, ...]
    - {"tokens": [...]}
    - 単一オブジェクト
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from design_token_merger.core.exceptions import InvalidTokenRecordError
from design_token_merger.core.types import RawToken

from .base_adapter import BaseAdapter


class JSON_Adapter(BaseAdapter):
    """Adapter for JSON token dumps.

    Args:
        file_path: Path to JSON file
        source: Default source kind for records without one (e.g. "variable")
        auto_repair: Drop malformed records instead of raising
    """

    def __init__(self, file_path: Path | str, source: str | None = None, auto_repair: bool = True) -> None:
        """Initialize adapter.

        Raises:
            FileNotFoundError: JSON file does not exist
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"JSON file not found: {self.file_path}")
        self.source = source
        self.auto_repair = auto_repair

    def _load_records(self) -> list[Any]:
        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to read JSON: {self.file_path}") from e

        if isinstance(data, dict) and isinstance(data.get("tokens"), list):
            return data["tokens"]
        if not isinstance(data, list):
            return [data]
        return data

    def _problem(self, record: Any) -> str | None:
        """レコードの不正理由（問題なければ None）."""
        if not isinstance(record, dict):
            return f"expected object, got {type(record).__name__}"
        if "name" not in record:
            return "missing 'name'"
        if "value" not in record:
            return "missing 'value'"
        if not isinstance(record.get("type"), str) or not record["type"]:
            return "missing 'type'"
        source = record.get("source", self.source)
        if not isinstance(source, str) or not source:
            return "missing 'source'"
        metadata = record.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            return "'metadata' must be an object"
        return None

    def read(self) -> list[RawToken]:
        """Read a JSON file into RawToken records.

        Raises:
            ValueError: Failed to read JSON
            InvalidTokenRecordError: Malformed record and auto_repair is disabled
        """
        records = self._load_records()

        if not self.validate(records):
            if not self.auto_repair:
                for index, record in enumerate(records):
                    problem = self._problem(record)
                    if problem is not None:
                        raise InvalidTokenRecordError(str(self.file_path), index, problem)
            records = self.repair(records)

        tokens = [
            RawToken(
                name=record["name"],
                value=record["value"],
                type=record["type"],
                source=record.get("source", self.source),
                metadata=record.get("metadata"),
            )
            for record in records
        ]
        logger.info(f"Loaded {len(tokens)} tokens from {self.file_path}")
        return tokens

    def validate(self, records: list[Any]) -> bool:
        """Validate records."""
        return all(self._problem(record) is None for record in records)

    def repair(self, records: list[Any]) -> list[Any]:
        """Drop malformed records with a warning."""
        kept: list[Any] = []
        for index, record in enumerate(records):
            problem = self._problem(record)
            if problem is None:
                kept.append(record)
            else:
                logger.warning(f"Dropped token record #{index} in {self.file_path}: {problem}")
        return kept
