"""
⚙️ DECISION ENGINE SETTINGS
===========================
Central configuration for the dormancy, lead-scoring and reversal pipelines.
Loads values from environment variables with sensible defaults.

Every engine builds (or is handed) its own Settings object, so one
organization's overrides never leak into another's.
"""

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from engine.errors import ConfigurationError

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)
else:
    # Try config directory
    load_dotenv(PROJECT_ROOT / "config" / ".env")


STAGE_NAMES = ("cooling", "dormant", "deep_dormant", "hibernating", "fossilized")


def _weights_sum_to_one(*weights: float) -> bool:
    return abs(sum(weights) - 1.0) < 0.001 and all(0 <= w <= 1 for w in weights)


def _is_calendar_day(month: int, day: int) -> bool:
    # Non-leap year: the window is rebuilt every year, so Feb 29 never qualifies
    try:
        date(2001, month, day)
    except ValueError:
        return False
    return True


class DatabaseSettings(BaseSettings):
    """Supabase database configuration (used by the caller-side DecisionStore)."""
    model_config = SettingsConfigDict(populate_by_name=True)

    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_key: str = Field(default="", validation_alias="SUPABASE_KEY")

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


class StageThresholds(BaseSettings):
    """Days of silence after which a lead moves into the next stage."""
    model_config = SettingsConfigDict(env_prefix="STAGE_")

    cooling: int = 7
    dormant: int = 30
    deep_dormant: int = 90
    hibernating: int = 180

    def as_tuple(self) -> tuple:
        return (self.cooling, self.dormant, self.deep_dormant, self.hibernating)

    def validate_thresholds(self) -> bool:
        """Ensure thresholds are positive and strictly increasing."""
        values = self.as_tuple()
        return values[0] > 0 and all(a < b for a, b in zip(values, values[1:]))


class DormancyWeights(BaseSettings):
    """Weights for dormancy depth and reactivation potential."""
    model_config = SettingsConfigDict(env_prefix="DORMANCY_WEIGHT_")

    depth_stage: float = 0.5
    depth_engagement: float = 0.3
    depth_response: float = 0.2

    potential_stage: float = 0.4
    potential_reason: float = 0.4
    potential_engagement: float = 0.2
    # Engagement only ever earns a small bonus on top of stage and reason
    engagement_bonus_scale: float = 0.2

    def validate_weights(self) -> bool:
        """Ensure each weight group sums to 1.0."""
        return (
            _weights_sum_to_one(self.depth_stage, self.depth_engagement, self.depth_response)
            and _weights_sum_to_one(
                self.potential_stage, self.potential_reason, self.potential_engagement
            )
            and 0 <= self.engagement_bonus_scale <= 1
        )


class TimingSettings(BaseSettings):
    """Re-engagement delays, in days."""
    model_config = SettingsConfigDict(env_prefix="TIMING_")

    stage_delays: Dict[str, int] = Field(default_factory=lambda: {
        "cooling": 2,
        "dormant": 5,
        "deep_dormant": 14,
        "hibernating": 30,
        "fossilized": 60,
    })
    reason_delays: Dict[str, int] = Field(default_factory=lambda: {
        "timing_mismatch": 14,
        "life_event": 30,
        "budget_constraints": 21,
    })
    window_days: int = 7
    # 0 = Sunday ... 6 = Saturday; 2 is Tuesday
    default_best_day: int = 2

    def validate_delays(self) -> bool:
        return (
            all(stage in self.stage_delays for stage in STAGE_NAMES)
            and all(d >= 0 for d in self.stage_delays.values())
            and all(d >= 0 for d in self.reason_delays.values())
            and self.window_days > 0
            and 0 <= self.default_best_day <= 6
        )


class RoutingSettings(BaseSettings):
    """EAR (Intent x Capacity / Efficiency) routing configuration."""
    model_config = SettingsConfigDict(env_prefix="ROUTING_")

    sales_threshold: int = 70
    nurture_threshold: int = 40
    efficiency_floor: int = 10
    # 100 x 100 / 10, the largest EAR the clamped sub-scores can produce
    ear_max: int = 1000
    max_activities: int = 20
    recent_activity_days: int = 7
    requalify_days: int = 14
    high_intent_types: List[str] = Field(default_factory=lambda: [
        "pricing_view",
        "booking_attempted",
        "proposal_view",
        "reply",
    ])
    source_weights: Dict[str, float] = Field(default_factory=lambda: {
        "referral": 0.9,
        "organic": 0.7,
        "content": 0.65,
        "paid_ad": 0.5,
        "cold_outbound": 0.4,
        "list": 0.3,
        "unknown": 0.5,
    })

    def validate_routing(self) -> bool:
        return (
            0 < self.nurture_threshold < self.sales_threshold <= self.ear_max
            and self.efficiency_floor > 0
            and self.max_activities > 0
            and all(0 <= w <= 1 for w in self.source_weights.values())
        )


class ReversalSettings(BaseSettings):
    """Lost-deal reversal configuration."""
    model_config = SettingsConfigDict(env_prefix="REVERSAL_")

    base_probability: float = 0.3
    reversible_keywords: List[str] = Field(default_factory=lambda: [
        "timing",
        "budget",
        "priority_shift",
        "internal_politics",
    ])
    value_haircut: float = 0.8
    pipeline_min_probability: float = 0.15
    cooling_off_days: int = 14
    earliest_reentry_days: int = 30
    latest_reentry_days: int = 365
    reentry_days: Dict[str, int] = Field(default_factory=lambda: {
        "budget": 120,
        "timing": 60,
        "competitor": 180,
        "default": 90,
    })
    holiday_start_month: int = 12
    holiday_start_day: int = 20
    holiday_end_month: int = 1
    holiday_end_day: int = 5

    def validate_reversal(self) -> bool:
        return (
            0 <= self.base_probability <= 1
            and 0 <= self.value_haircut <= 1
            and 0 <= self.pipeline_min_probability <= 1
            and "default" in self.reentry_days
            and all(days >= 0 for days in self.reentry_days.values())
            and self.cooling_off_days >= 0
            and _is_calendar_day(self.holiday_start_month, self.holiday_start_day)
            and _is_calendar_day(self.holiday_end_month, self.holiday_end_day)
            and 0 <= self.earliest_reentry_days <= self.latest_reentry_days
        )


class OutreachSettings(BaseSettings):
    """Channel selection configuration."""
    model_config = SettingsConfigDict(env_prefix="OUTREACH_")

    min_channel_response_rate: float = 0.3


class BatchSettings(BaseSettings):
    """Batch execution configuration."""
    model_config = SettingsConfigDict(env_prefix="BATCH_")

    max_workers: int = 4


class Settings:
    """
    Master settings class that combines all configuration.

    Usage:
        from config.settings import Settings

        settings = Settings()
        settings.stages.dormant          # 30
        settings.routing.sales_threshold # 70

        # Per-organization override
        custom = Settings(stages=StageThresholds(cooling=3, dormant=14,
                                                 deep_dormant=60, hibernating=120))
        custom.ensure_valid()
    """

    def __init__(
        self,
        stages: Optional[StageThresholds] = None,
        dormancy: Optional[DormancyWeights] = None,
        timing: Optional[TimingSettings] = None,
        routing: Optional[RoutingSettings] = None,
        reversal: Optional[ReversalSettings] = None,
        outreach: Optional[OutreachSettings] = None,
        batch: Optional[BatchSettings] = None,
        database: Optional[DatabaseSettings] = None,
    ):
        self.stages = stages or StageThresholds()
        self.dormancy = dormancy or DormancyWeights()
        self.timing = timing or TimingSettings()
        self.routing = routing or RoutingSettings()
        self.reversal = reversal or ReversalSettings()
        self.outreach = outreach or OutreachSettings()
        self.batch = batch or BatchSettings()
        self.database = database or DatabaseSettings()
        self.project_root = PROJECT_ROOT

    def validate(self) -> dict:
        """
        Validate all settings and return status.
        Returns dict with validation results.
        """
        results = {
            "thresholds_valid": self.stages.validate_thresholds(),
            "weights_valid": self.dormancy.validate_weights(),
            "delays_valid": self.timing.validate_delays(),
            "routing_valid": self.routing.validate_routing(),
            "reversal_valid": self.reversal.validate_reversal(),
            "outreach_valid": 0 <= self.outreach.min_channel_response_rate <= 1,
            "batch_valid": self.batch.max_workers >= 1,
        }
        results["all_valid"] = all(results.values())
        return results

    def ensure_valid(self) -> "Settings":
        """Raise ConfigurationError naming every failed check."""
        validation = self.validate()
        if not validation["all_valid"]:
            failed = [name for name, ok in validation.items() if not ok and name != "all_valid"]
            raise ConfigurationError(
                f"Invalid engine configuration: {', '.join(failed)}",
                field=failed[0],
            )
        return self
