"""Environment-driven feature flags."""

import logging
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from app.core.config import settings

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1", "yes", "on", "enabled"}
FALSE_VALUES = {"false", "0", "no", "off", "disabled"}

FLAG_CATEGORIES: dict[str, list[str]] = {
    "core": [
        "real_time_collaboration",
        "advanced_reporting",
        "ai_personalization",
        "mobile_optimization",
    ],
    "security": ["two_factor_auth", "audit_logging", "rate_limiting", "input_validation"],
    "performance": ["caching", "lazy_loading", "image_optimization", "database_optimization"],
    "user_experience": [
        "dark_mode",
        "accessibility_enhancements",
        "offline_support",
        "push_notifications",
    ],
    "development": ["beta_features", "debug_mode", "performance_monitoring", "error_tracking"],
    "integration": [
        "email_notifications",
        "sms_notifications",
        "third_party_integrations",
        "webhook_support",
    ],
}


class FeatureFlags(BaseSettings):
    """
    Feature toggles read from FEATURE_* environment variables.

    Unknown values never fail startup: they log a warning and fall back to
    the field default.
    """

    # Core
    real_time_collaboration: bool = Field(False, validation_alias="FEATURE_REALTIME")
    advanced_reporting: bool = Field(True, validation_alias="FEATURE_REPORTING")
    ai_personalization: bool = Field(False, validation_alias="FEATURE_AI")
    mobile_optimization: bool = Field(True, validation_alias="FEATURE_MOBILE")

    # Security
    two_factor_auth: bool = Field(False, validation_alias="FEATURE_2FA")
    audit_logging: bool = Field(True, validation_alias="FEATURE_AUDIT")
    rate_limiting: bool = Field(True, validation_alias="FEATURE_RATE_LIMIT")
    input_validation: bool = Field(True, validation_alias="FEATURE_INPUT_VALIDATION")

    # Performance
    caching: bool = Field(True, validation_alias="FEATURE_CACHE")
    lazy_loading: bool = Field(True, validation_alias="FEATURE_LAZY_LOAD")
    image_optimization: bool = Field(True, validation_alias="FEATURE_IMAGE_OPT")
    database_optimization: bool = Field(True, validation_alias="FEATURE_DB_OPT")

    # User experience
    dark_mode: bool = Field(False, validation_alias="FEATURE_DARK_MODE")
    accessibility_enhancements: bool = Field(True, validation_alias="FEATURE_A11Y")
    offline_support: bool = Field(False, validation_alias="FEATURE_OFFLINE")
    push_notifications: bool = Field(False, validation_alias="FEATURE_PUSH")

    # Development
    beta_features: bool = Field(False, validation_alias="FEATURE_BETA")
    debug_mode: bool = Field(False, validation_alias="FEATURE_DEBUG")
    performance_monitoring: bool = Field(True, validation_alias="FEATURE_PERF_MON")
    error_tracking: bool = Field(True, validation_alias="FEATURE_ERROR_TRACK")

    # Integrations
    email_notifications: bool = Field(False, validation_alias="FEATURE_EMAIL")
    sms_notifications: bool = Field(False, validation_alias="FEATURE_SMS")
    third_party_integrations: bool = Field(False, validation_alias="FEATURE_THIRD_PARTY")
    webhook_support: bool = Field(False, validation_alias="FEATURE_WEBHOOKS")

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @field_validator("*", mode="before")
    @classmethod
    def parse_env_boolean(cls, value: Any, info: ValidationInfo) -> Any:
        default = cls.model_fields[info.field_name].default
        if value is None or isinstance(value, bool):
            return default if value is None else value

        normalized = str(value).strip().lower()
        if not normalized:
            return default
        if normalized in TRUE_VALUES:
            return True
        if normalized in FALSE_VALUES:
            return False

        logger.warning(
            "Invalid feature flag value %r for %s, using default %s",
            value,
            info.field_name,
            default,
        )
        return default

    def is_feature_enabled(self, feature: str) -> bool:
        """Return the flag value; unknown feature names are disabled."""
        if feature not in type(self).model_fields:
            return False
        return bool(getattr(self, feature))

    def get_enabled_features(self) -> list[str]:
        return [name for name, enabled in self.model_dump().items() if enabled]

    def validate_configuration(self, environment: str | None = None) -> tuple[bool, list[str]]:
        """Check for conflicting flag combinations."""
        environment = (environment or settings.ENVIRONMENT).lower()
        errors: list[str] = []

        if self.debug_mode and environment == "production":
            errors.append("Debug mode should not be enabled in production")
        if self.beta_features and environment == "production":
            errors.append("Beta features should not be enabled in production")
        if self.real_time_collaboration and not self.caching:
            errors.append("Real-time collaboration requires caching to be enabled")
        if self.push_notifications and not self.email_notifications:
            errors.append("Push notifications typically require email notifications as fallback")

        return len(errors) == 0, errors

    def get_analytics(self) -> dict:
        flags = self.model_dump()
        enabled = sum(1 for value in flags.values() if value)
        total = len(flags)

        return {
            "total_flags": total,
            "enabled_flags": enabled,
            "disabled_flags": total - enabled,
            "enabled_percentage": round(enabled / total * 100) if total else 0,
            "flags_by_category": {
                category: sum(1 for name in names if flags.get(name))
                for category, names in FLAG_CATEGORIES.items()
            },
        }


feature_flags = FeatureFlags()
