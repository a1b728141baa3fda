"""Configuration loader for the counselling watch pipeline.

Reads config.yaml and returns typed configuration objects that the
pipeline driver and individual source adapters consume.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from counselling_watch.classifier import Classifier
from counselling_watch.triage import TriageFilter

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

PatternTable = list[tuple[str, list[str]]]


@dataclass
class SourceConfig:
    """Configuration for a single watched site."""

    id: str
    name: str
    source_type: str  # "table_rows", "list_items", "notice_api"
    url: str = ""
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class VocabularyConfig:
    """Triage and classification vocabularies.

    ``None`` means "use the built-in defaults". Pattern tables are in
    priority order.
    """

    exclude_terms: Optional[list[str]] = None
    round_patterns: Optional[PatternTable] = None
    type_patterns: Optional[PatternTable] = None

    def build_classifier(self) -> Classifier:
        return Classifier(self.round_patterns, self.type_patterns)

    def build_triage(self) -> TriageFilter:
        return TriageFilter(self.exclude_terms)


@dataclass
class PipelineConfig:
    """Top-level pipeline configuration."""

    sources: list[SourceConfig] = field(default_factory=list)
    data_dir: str = "data"
    downloads_dir: str = "downloads"
    log_level: str = "INFO"
    request_delay_seconds: float = 1.0  # polite delay between HTTP requests
    request_timeout_seconds: float = 30.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    vocabulary: VocabularyConfig = field(default_factory=VocabularyConfig)

    @property
    def enabled_sources(self) -> list[SourceConfig]:
        return [s for s in self.sources if s.enabled]


def _parse_pattern_table(raw: Any, key: str) -> Optional[PatternTable]:
    """Turn ``[{tag: ..., variants: [...]}, ...]`` into an ordered table."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValueError(f"vocabulary.{key} must be a list of {{tag, variants}} entries")

    table: PatternTable = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("tag"):
            raise ValueError(f"vocabulary.{key} entries must be mappings with a 'tag' (got {entry!r})")
        variants = entry.get("variants") or []
        if isinstance(variants, str):
            variants = [variants]
        table.append((entry["tag"], list(variants)))
    return table


def _parse_vocabulary(raw: dict | None) -> VocabularyConfig:
    raw = raw or {}
    return VocabularyConfig(
        exclude_terms=raw.get("exclude_terms"),
        round_patterns=_parse_pattern_table(raw.get("round_patterns"), "round_patterns"),
        type_patterns=_parse_pattern_table(raw.get("type_patterns"), "type_patterns"),
    )


def load_config(path: Path | str | None = None) -> PipelineConfig:
    """Load and validate the pipeline configuration from a YAML file."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning("Config file not found at %s — using defaults", config_path)
        return PipelineConfig()

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    if not raw:
        return PipelineConfig()

    sources = []
    for src in raw.get("sources") or []:
        sources.append(
            SourceConfig(
                id=src["id"],
                name=src.get("name", src["id"]),
                source_type=src["source_type"],
                url=src.get("url", ""),
                enabled=src.get("enabled", True),
                params=src.get("params") or {},
            )
        )

    return PipelineConfig(
        sources=sources,
        data_dir=raw.get("data_dir", "data"),
        downloads_dir=raw.get("downloads_dir", "downloads"),
        log_level=raw.get("log_level", "INFO"),
        request_delay_seconds=raw.get("request_delay_seconds", 1.0),
        request_timeout_seconds=raw.get("request_timeout_seconds", 30.0),
        user_agent=raw.get("user_agent", PipelineConfig.user_agent),
        vocabulary=_parse_vocabulary(raw.get("vocabulary")),
    )
