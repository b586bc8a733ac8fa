"""Load pipeline settings from YAML or JSON, layered over built-in defaults."""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from logging import getLogger
from pathlib import Path
from typing import Any, Final, cast

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from prospectminer.domain.fields import UnknownFieldError, resolve_field
from prospectminer.domain.model import (
    AngleType,
    ContactResult,
    ExclusionReason,
    FailureType,
    FilterOperator,
)
from prospectminer.domain.settings import (
    DEFAULT_ANGLE_WEIGHTS,
    DEFAULT_BOOKING_SIGNALS,
    DEFAULT_CONTACT_PAGE_PATTERNS,
    DEFAULT_CONTACT_RESULT_COOLDOWN_DAYS,
    DEFAULT_EMAIL_PATTERNS,
    DEFAULT_FAILURE_COOLDOWN_DAYS,
    DEFAULT_OUTPUT_FIELDS,
    DEFAULT_PHONE_PATTERNS,
    DEFAULT_USER_AGENT,
    CooldownSettings,
    EnrichmentSettings,
    FilterRule,
    FilterSettings,
    GeoTarget,
    OutputFormat,
    OutputSettings,
    PipelineSettings,
    ProspectMinerConfig,
    RefreshSettings,
    ScoringSettings,
    ScoringThresholds,
    ScoringWeights,
    SourceSettings,
)

from .errors import ConfigurationError

log = getLogger(__name__)

CONFIG_ENV: Final[str] = "PROSPECTMINER_CONFIG"
DEFAULT_CONFIG_FILENAMES: Final[tuple[str, ...]] = (
    "prospectminer.yaml",
    "prospectminer.yml",
    "prospectminer.json",
)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub(r"_\1", key).lower()


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GeoModel(SettingsModel):
    city: str
    state: str
    country: str = "US"


class SourceModel(SettingsModel):
    name: str
    type: str
    enabled: bool = True
    categories: list[str] = Field(default_factory=list[str])
    geos: list[GeoModel] = Field(default_factory=list[GeoModel])
    rate_limit: int | None = Field(default=None, gt=0)
    options: dict[str, Any] = Field(default_factory=dict[str, Any])


class FilterRuleModel(SettingsModel):
    field: str
    operator: FilterOperator
    value: Any = None
    reason: ExclusionReason = ExclusionReason.BAD_FIT

    @field_validator("field")
    @classmethod
    def _known_field(cls, value: str) -> str:
        try:
            resolve_field(value)
        except UnknownFieldError as exc:
            raise ValueError(str(exc)) from exc
        return value


class FiltersModel(SettingsModel):
    exclude_categories: list[str] = Field(default_factory=list[str])
    exclude_keywords: list[str] = Field(default_factory=list[str])
    rules: list[FilterRuleModel] = Field(default_factory=list[FilterRuleModel])


class CooldownsModel(SettingsModel):
    default_days: int = Field(default=30, ge=0)
    by_contact_result: dict[ContactResult, int] = Field(
        default_factory=lambda: dict(DEFAULT_CONTACT_RESULT_COOLDOWN_DAYS)
    )
    by_failure_type: dict[FailureType, int] = Field(
        default_factory=lambda: dict(DEFAULT_FAILURE_COOLDOWN_DAYS)
    )


class WeightsModel(SettingsModel):
    has_email: float = 30
    has_phone: float = 20
    has_website: float = 10
    review_count: float = 15
    rating: float = 15
    recent_activity: float = 10


class ThresholdsModel(SettingsModel):
    min_score: float = Field(default=20, ge=0, le=100)
    low_review_count: int = Field(default=10, ge=0)
    poor_rating: float = Field(
        default=3.5,
        ge=0,
        le=5,
        validation_alias=AliasChoices("poor_rating_threshold", "poor_rating"),
    )
    outdated_website_days: int = Field(default=365, ge=0)
    founder_max_employees: int = Field(default=10, ge=0)


class ScoringModel(SettingsModel):
    weights: WeightsModel = Field(default_factory=WeightsModel)
    thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)
    angle_weights: dict[AngleType, float] = Field(
        default_factory=lambda: dict(DEFAULT_ANGLE_WEIGHTS)
    )


class EnrichmentModel(SettingsModel):
    timeout_seconds: float = Field(default=30.0, gt=0)
    retries: int = Field(default=2, ge=0)
    requests_per_minute: int = Field(default=60, gt=0)
    concurrency: int = Field(default=5, gt=0)
    max_contact_pages: int = Field(default=2, ge=0)
    user_agent: str = DEFAULT_USER_AGENT
    email_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_EMAIL_PATTERNS))
    phone_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_PHONE_PATTERNS))
    contact_page_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CONTACT_PAGE_PATTERNS)
    )
    booking_signals: list[str] = Field(default_factory=lambda: list(DEFAULT_BOOKING_SIGNALS))

    @field_validator("email_patterns", "phone_patterns")
    @classmethod
    def _compilable(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid pattern {pattern!r}: {exc}") from exc
        return value


class OutputModel(SettingsModel):
    format: OutputFormat = OutputFormat.CSV
    directory: Path = Path("output")
    fields: list[str] = Field(default_factory=lambda: list(DEFAULT_OUTPUT_FIELDS))
    include_angles: bool = True
    include_reasons: bool = True
    min_score: float | None = None

    @field_validator("fields")
    @classmethod
    def _known_fields(cls, value: list[str]) -> list[str]:
        for path in value:
            try:
                resolve_field(path)
            except UnknownFieldError as exc:
                raise ValueError(str(exc)) from exc
        return value


class RefreshModel(SettingsModel):
    # alternate keys come first: the merged defaults always carry the field name
    enabled: bool = True
    check_interval_hours: float = Field(default=24, ge=0)
    check_expired_cooldowns: bool = Field(
        default=True,
        validation_alias=AliasChoices("cooldown_expiry_check_enabled", "check_expired_cooldowns"),
    )
    check_signal_changes: bool = Field(
        default=True,
        validation_alias=AliasChoices("signal_change_check_enabled", "check_signal_changes"),
    )
    reset_exhausted_angles: bool = False
    batch_limit: int = Field(default=500, gt=0)
    raw_retention_days: int = Field(default=7, ge=0)


class PipelineModel(SettingsModel):
    batch_size: int = Field(default=100, gt=0)
    max_leads_per_run: int = Field(default=500, gt=0)
    parallelism: int = Field(default=5, gt=0)


class ConfigModel(SettingsModel):
    sources: list[SourceModel] = Field(default_factory=list[SourceModel])
    filters: FiltersModel = Field(default_factory=FiltersModel)
    cooldowns: CooldownsModel = Field(default_factory=CooldownsModel)
    scoring: ScoringModel = Field(default_factory=ScoringModel)
    enrichment: EnrichmentModel = Field(default_factory=EnrichmentModel)
    output: OutputModel = Field(default_factory=OutputModel)
    refresh: RefreshModel = Field(default_factory=RefreshModel)
    pipeline: PipelineModel = Field(default_factory=PipelineModel)

    def to_settings(self) -> ProspectMinerConfig:
        return ProspectMinerConfig(
            sources=tuple(
                SourceSettings(
                    name=source.name,
                    type=source.type,
                    enabled=source.enabled,
                    categories=tuple(source.categories),
                    geos=tuple(
                        GeoTarget(city=geo.city, state=geo.state, country=geo.country)
                        for geo in source.geos
                    ),
                    rate_limit=source.rate_limit,
                    options=dict(source.options),
                )
                for source in self.sources
            ),
            filters=FilterSettings(
                exclude_categories=tuple(self.filters.exclude_categories),
                exclude_keywords=tuple(self.filters.exclude_keywords),
                rules=tuple(
                    FilterRule(
                        field=rule.field,
                        operator=rule.operator,
                        value=rule.value,
                        reason=rule.reason,
                    )
                    for rule in self.filters.rules
                ),
            ),
            cooldowns=CooldownSettings(
                default_days=self.cooldowns.default_days,
                by_contact_result={
                    **DEFAULT_CONTACT_RESULT_COOLDOWN_DAYS,
                    **self.cooldowns.by_contact_result,
                },
                by_failure_type={**DEFAULT_FAILURE_COOLDOWN_DAYS, **self.cooldowns.by_failure_type},
            ),
            scoring=ScoringSettings(
                weights=ScoringWeights(**self.scoring.weights.model_dump()),
                thresholds=ScoringThresholds(**self.scoring.thresholds.model_dump()),
                angle_weights={**DEFAULT_ANGLE_WEIGHTS, **self.scoring.angle_weights},
            ),
            enrichment=EnrichmentSettings(
                timeout_seconds=self.enrichment.timeout_seconds,
                retries=self.enrichment.retries,
                requests_per_minute=self.enrichment.requests_per_minute,
                concurrency=self.enrichment.concurrency,
                max_contact_pages=self.enrichment.max_contact_pages,
                user_agent=self.enrichment.user_agent,
                email_patterns=tuple(self.enrichment.email_patterns),
                phone_patterns=tuple(self.enrichment.phone_patterns),
                contact_page_patterns=tuple(self.enrichment.contact_page_patterns),
                booking_signals=tuple(self.enrichment.booking_signals),
            ),
            output=OutputSettings(
                format=self.output.format,
                directory=self.output.directory,
                fields=tuple(self.output.fields),
                include_angles=self.output.include_angles,
                include_reasons=self.output.include_reasons,
                min_score=self.output.min_score,
            ),
            refresh=RefreshSettings(**self.refresh.model_dump()),
            pipeline=PipelineSettings(**self.pipeline.model_dump()),
        )


def normalize_keys(document: object) -> object:
    """Recursively convert camelCase mapping keys to snake_case."""

    if isinstance(document, Mapping):
        mapping = cast(Mapping[object, object], document)
        return {
            _snake_case(str(key)): normalize_keys(value) for key, value in mapping.items()
        }
    if isinstance(document, list):
        return [normalize_keys(item) for item in cast(list[object], document)]
    return document


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into ``base``: mappings merge recursively, anything else replaces."""

    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(
                cast(Mapping[str, Any], current), cast(Mapping[str, Any], value)
            )
        else:
            merged[key] = value
    return merged


def default_document() -> dict[str, Any]:
    return ConfigModel().model_dump(mode="json")


def _read_document(path: Path) -> Mapping[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {path}", origin=path) from exc

    try:
        if path.suffix.lower() == ".json":
            loaded: object = json.loads(text)
        else:
            loaded = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            f"Could not parse config file {path}: {exc}", origin=path
        ) from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping at the top level", origin=path
        )
    return cast(Mapping[str, Any], normalize_keys(loaded))


def find_config_file(directory: Path | None = None) -> Path | None:
    """Return the config file named by the environment or found in ``directory``."""

    env_path = os.getenv(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    base = directory or Path.cwd()
    for name in DEFAULT_CONFIG_FILENAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> ProspectMinerConfig:
    """Build settings from ``path`` (or a discovered file) over the defaults."""

    config_path = path or find_config_file()
    override: Mapping[str, Any] = {}
    if config_path is not None:
        log.info("Loading configuration from %s", config_path)
        override = _read_document(config_path)
    else:
        log.debug("No configuration file found, using defaults")

    merged = deep_merge(default_document(), override)
    try:
        model = ConfigModel.model_validate(merged)
    except ValidationError as exc:
        source = config_path or "defaults"
        raise ConfigurationError(
            f"Invalid configuration in {source}: {exc}", origin=config_path
        ) from exc
    return model.to_settings()
