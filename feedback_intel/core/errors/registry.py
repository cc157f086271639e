"""
Error catalog for FBI-* codes, read from registry.yaml at startup.

Each entry decides how a FeedbackIntelError is surfaced: the HTTP status,
the user-safe message and the remediation hints. The raising code only
picks the code.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from feedback_intel.core.errors import CODE_PATTERN

logger = logging.getLogger(__name__)

DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "registry.yaml")

# API: transport, DB: record store, CACHE: view cache, CLS: sentiment
# classifier, LLM: insight summarizer, SYS: everything else
VALID_DOMAINS = {"API", "DB", "CACHE", "CLS", "LLM", "SYS"}
VALID_SEVERITIES = {"DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"}
REQUIRED_FIELDS = {"code", "domain", "title", "severity", "retryable", "http_status", "safe_message", "remediation"}


class RegistryValidationError(Exception):
    """registry.yaml is malformed."""


@dataclass(frozen=True)
class ErrorEntry:
    code: str
    domain: str
    title: str
    severity: str
    retryable: bool
    http_status: int
    safe_message: str
    remediation: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    docs_url: Optional[str] = None

    @classmethod
    def from_raw(cls, idx: int, raw: dict) -> "ErrorEntry":
        missing = REQUIRED_FIELDS - set(raw)
        if missing:
            raise RegistryValidationError(
                f"Entry {idx} ({raw.get('code', '?')}): missing fields {sorted(missing)}"
            )

        code, domain = raw["code"], raw["domain"]
        if not CODE_PATTERN.match(code):
            raise RegistryValidationError(f"Invalid code format: {code!r}")
        prefix = code.split("-")[1]
        if domain != prefix:
            raise RegistryValidationError(f"{code}: domain {domain!r} doesn't match code prefix {prefix!r}")
        if domain not in VALID_DOMAINS:
            raise RegistryValidationError(f"{code}: unknown domain {domain!r}")
        if raw["severity"] not in VALID_SEVERITIES:
            raise RegistryValidationError(f"{code}: unknown severity {raw['severity']!r}")
        status = int(raw["http_status"])
        if not 400 <= status <= 599:
            raise RegistryValidationError(f"{code}: http_status {status} is not an error status")

        return cls(
            code=code,
            domain=domain,
            title=raw["title"],
            severity=raw["severity"],
            retryable=bool(raw["retryable"]),
            http_status=status,
            safe_message=raw["safe_message"],
            remediation=list(raw.get("remediation") or []),
            tags=list(raw.get("tags") or []),
            docs_url=raw.get("docs_url"),
        )


class ErrorRegistry:

    def __init__(self) -> None:
        self._entries: Dict[str, ErrorEntry] = {}
        self.schema_version: int = 0

    def load(self, path: str | None = None) -> None:
        """Parse and validate the catalog; replaces any previously loaded entries."""
        with open(path or DEFAULT_PATH, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        raw_entries = data.get("errors", [])
        if not isinstance(raw_entries, list):
            raise RegistryValidationError("'errors' must be a list")

        entries: Dict[str, ErrorEntry] = {}
        for idx, raw in enumerate(raw_entries):
            entry = ErrorEntry.from_raw(idx, raw)
            if entry.code in entries:
                raise RegistryValidationError(f"Duplicate code: {entry.code}")
            entries[entry.code] = entry

        self._entries = entries
        self.schema_version = data.get("schema_version", 0)
        logger.info("error_registry_loaded", extra={"count": len(entries), "schema_version": self.schema_version})

    def get(self, code: str) -> ErrorEntry | None:
        return self._entries.get(code)

    def lookup(self, code: str) -> ErrorEntry:
        entry = self._entries.get(code)
        if entry is None:
            raise KeyError(f"Unknown error code: {code!r}")
        return entry

    def all_codes(self) -> list[str]:
        return list(self._entries)

    def codes_for(self, domain: str) -> list[str]:
        return [code for code, entry in self._entries.items() if entry.domain == domain]

    def __len__(self) -> int:
        return len(self._entries)


error_registry = ErrorRegistry()
