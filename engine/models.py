"""
📦 SIGNAL MODEL & DECISION RECORDS
==================================
Shared data structures for all three pipelines.

INPUTS (immutable pydantic models, validated on construction):
- BehaviorSignals: engagement, response patterns, price reactions, objections
- LeadRecord / WebsiteDiagnosis / Activity: inbound lead scoring
- LostDeal and friends: lost-deal reversal

OUTPUTS (frozen dataclasses, tuples instead of lists):
- DormancyClassification, ScoreResult, ReversalOpportunity

Day-of-week values follow the 0 = Sunday ... 6 = Saturday convention.
Naive datetimes are read as UTC.
"""

from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Type, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from engine.errors import InvalidInputError


# ===========================================
# ENUMERATIONS
# ===========================================

class DormancyStage(str, Enum):
    """Ordered from least to most severe."""
    COOLING = "cooling"
    DORMANT = "dormant"
    DEEP_DORMANT = "deep_dormant"
    HIBERNATING = "hibernating"
    FOSSILIZED = "fossilized"


class AbandonmentReason(str, Enum):
    """
    Closed reason taxonomy shared by the dormancy and reversal pipelines.

    Declaration order is the tie-break order when two reasons score the same.
    """
    PRICE_SHOCK = "price_shock"
    TIMING_MISMATCH = "timing_mismatch"
    TRUST_DEFICIT = "trust_deficit"
    IDENTITY_MISALIGNMENT = "identity_misalignment"
    FEAR_OF_COMMITMENT = "fear_of_commitment"
    COMPETITOR_DISTRACTION = "competitor_distraction"
    INTERNAL_POLITICS = "internal_politics"
    BUDGET_CONSTRAINTS = "budget_constraints"
    DECISION_PARALYSIS = "decision_paralysis"
    VALUE_UNCLEAR = "value_unclear"
    AUTHORITY_INSUFFICIENT = "authority_insufficient"
    URGENCY_LACKING = "urgency_lacking"
    OVERWHELM = "overwhelm"
    LIFE_EVENT = "life_event"
    GHOSTING_HABIT = "ghosting_habit"
    UNKNOWN = "unknown"


class ReentryStrategy(str, Enum):
    VALUE_REMINDER = "value_reminder"
    NEW_ANGLE = "new_angle"
    SOCIAL_PROOF_INJECTION = "social_proof_injection"
    SCARCITY_AUTHENTIC = "scarcity_authentic"
    RELATIONSHIP_REBUILD = "relationship_rebuild"
    PROBLEM_RESURFACE = "problem_resurface"
    SUCCESS_STORY = "success_story"
    DIRECT_ASK = "direct_ask"
    SOFT_CHECK_IN = "soft_check_in"
    PERMISSION_BASED = "permission_based"


class CommunicationChannel(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    SMS = "sms"
    SOCIAL_DM = "social_dm"
    VIDEO_MESSAGE = "video_message"
    DIRECT_MAIL = "direct_mail"
    RETARGETING = "retargeting"


class CommunicationTone(str, Enum):
    PROFESSIONAL = "professional"
    WARM = "warm"
    CASUAL = "casual"
    AUTHORITATIVE = "authoritative"
    EMPATHETIC = "empathetic"
    CURIOUS = "curious"
    DIRECT = "direct"


class Intensity(str, Enum):
    SOFT = "soft"
    MODERATE = "moderate"
    ASSERTIVE = "assertive"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RoutingDecision(str, Enum):
    SALES = "sales"
    NURTURE = "nurture"
    REJECT = "reject"


class ReversalApproach(str, Enum):
    VALUE_REPOSITIONING = "value_repositioning"
    NEW_STAKEHOLDER_ENTRY = "new_stakeholder_entry"
    COMPETITIVE_DISPLACEMENT = "competitive_displacement"
    CHANGED_CIRCUMSTANCES = "changed_circumstances"
    RELATIONSHIP_REBUILD = "relationship_rebuild"
    NEW_OFFER_STRUCTURE = "new_offer_structure"
    EXECUTIVE_ESCALATION = "executive_escalation"
    REFERENCE_LEVERAGE = "reference_leverage"
    PILOT_PROPOSAL = "pilot_proposal"
    PARTNERSHIP_REFRAME = "partnership_reframe"


class TriggerType(str, Enum):
    COMPETITOR_FAILURE = "competitor_failure"
    BUDGET_CYCLE = "budget_cycle"
    LEADERSHIP_CHANGE = "leadership_change"
    STRATEGIC_SHIFT = "strategic_shift"
    REGULATORY_CHANGE = "regulatory_change"
    EXPANSION_ANNOUNCEMENT = "expansion_announcement"
    MERGER_ACQUISITION = "merger_acquisition"
    TECHNOLOGY_UPGRADE = "technology_upgrade"
    CONTRACT_RENEWAL = "contract_renewal"
    PAIN_POINT_ESCALATION = "pain_point_escalation"


# ===========================================
# INPUT MODELS
# ===========================================

def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class _Input(BaseModel):
    model_config = ConfigDict(frozen=True)


class EngagementEvent(_Input):
    type: str
    timestamp: UtcDatetime
    depth: float = Field(ge=0, le=1)
    sentiment: float = Field(ge=0, le=1)


class ResponsePattern(_Input):
    day_of_week: int = Field(ge=0, le=6)
    time_of_day: str = ""
    response_speed: float = Field(ge=0)
    engagement_quality: float = Field(ge=0, le=1)


class PriceReaction(_Input):
    price_point: float
    reaction: Literal["positive", "neutral", "hesitant", "negative", "shock"]
    context: str = ""


class CommunicationPreference(_Input):
    channel: CommunicationChannel
    preference_score: float = 0.0
    response_rate: float = Field(ge=0, le=1)


class BehaviorSignals(_Input):
    """Everything the dormancy pipeline knows about one lead."""
    last_engagement: UtcDatetime
    engagement_history: Tuple[EngagementEvent, ...] = ()
    response_patterns: Tuple[ResponsePattern, ...] = ()
    price_reactions: Tuple[PriceReaction, ...] = ()
    objection_history: Tuple[str, ...] = ()
    communication_preferences: Tuple[CommunicationPreference, ...] = ()


class LeadRecord(_Input):
    id: str = Field(min_length=1)
    organization_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    source: Optional[str] = None
    website_url: Optional[str] = None
    notes: Optional[str] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


class WebsiteDiagnosis(_Input):
    offer_clarity: Optional[float] = None
    pricing_signals: Tuple[str, ...] = ()
    authority_markers: Tuple[str, ...] = ()
    friction_signals: Tuple[str, ...] = ()
    sophistication_level: Optional[str] = None


class Activity(_Input):
    activity_type: str = ""
    created_at: UtcDatetime


class DecisionMaker(_Input):
    id: str
    name: str = ""
    role: str = ""
    influence: Literal["primary", "secondary", "influencer", "blocker"] = "secondary"
    sentiment: Literal["positive", "neutral", "negative", "unknown"] = "unknown"
    last_contact: Optional[UtcDatetime] = None
    preferred_channel: Optional[str] = None
    key_motivations: Tuple[str, ...] = ()


class Interaction(_Input):
    date: UtcDatetime
    type: str
    outcome: Literal["positive", "neutral", "negative"] = "neutral"
    notes: str = ""
    next_steps_agreed: Tuple[str, ...] = ()


class ProposalDetails(_Input):
    submitted_date: Optional[UtcDatetime] = None
    value: float = 0.0
    terms: Tuple[str, ...] = ()
    key_differentiators: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()


class CompetitiveContext(_Input):
    known_competitors: Tuple[str, ...] = ()
    competitor_chosen: Optional[str] = None
    reasons_for_choice: Tuple[str, ...] = ()
    market_conditions: str = ""
    budget_constraints: Optional[str] = None


class RelationshipStrength(_Input):
    overall_score: float = Field(default=50, ge=0, le=100)
    trust_level: Literal["high", "medium", "low", "broken"] = "medium"
    champions_identified: bool = False
    executive_access: bool = False
    technical_validated: bool = False


class LostDeal(_Input):
    id: str = Field(min_length=1)
    lead_id: Optional[str] = None
    original_opportunity_value: float = Field(ge=0)
    loss_date: UtcDatetime
    stage_when_lost: str = ""
    competitor_won: Optional[str] = None
    stated_loss_reason: str = ""
    inferred_loss_reason: Optional[str] = None
    decision_makers: Tuple[DecisionMaker, ...] = ()
    interaction_history: Tuple[Interaction, ...] = ()
    proposal_details: Optional[ProposalDetails] = None
    competitive_context: CompetitiveContext = Field(default_factory=CompetitiveContext)
    relationship_strength: RelationshipStrength = Field(default_factory=RelationshipStrength)

    @property
    def competitor_chosen(self) -> Optional[str]:
        return self.competitive_context.competitor_chosen or self.competitor_won


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_input(model: Type[ModelT], value: Any, name: str) -> ModelT:
    """
    Coerce a caller payload into an input model.

    Raises:
        InvalidInputError: naming the first offending field
    """
    if isinstance(value, model):
        return value
    if value is None:
        raise InvalidInputError(f"{name} is required", field=name)
    try:
        if isinstance(value, BaseModel):
            value = value.model_dump()
        return model.model_validate(value)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        field = f"{name}.{location}" if location else name
        raise InvalidInputError(f"Invalid {field}: {first['msg']}", field=field) from e


# ===========================================
# OUTPUT RECORDS
# ===========================================

def _serialize(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _serialize(v) for k, v in value.items()}
    return value


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation (ISO datetimes, enum values)."""
        return _serialize(self)


@dataclass(frozen=True)
class TimeWindow(_Record):
    optimal_start: datetime
    optimal_end: datetime
    peak_moment: datetime
    reasoning: str


@dataclass(frozen=True)
class RiskFlag(_Record):
    type: str
    severity: Severity
    description: str
    mitigation: str
    likelihood: Optional[float] = None


@dataclass(frozen=True)
class ApproachRecommendation(_Record):
    strategy: ReentryStrategy
    channel: CommunicationChannel
    tone: CommunicationTone
    intensity: Intensity
    message_framing: str
    avoidances: Tuple[str, ...]


@dataclass(frozen=True)
class DormancyClassification(_Record):
    lead_id: str
    dormancy_stage: DormancyStage
    primary_reason: AbandonmentReason
    secondary_reasons: Tuple[AbandonmentReason, ...]
    dormancy_depth: float
    reactivation_potential: float
    optimal_reentry_window: TimeWindow
    risk_factors: Tuple[RiskFlag, ...]
    recommended_approach: ApproachRecommendation
    classified_at: datetime


@dataclass(frozen=True)
class IdentitySignals(_Record):
    has_email: bool
    has_phone: bool
    has_company: bool
    has_website: bool
    company_size: Optional[str] = None


@dataclass(frozen=True)
class WebsiteSignals(_Record):
    offer_clarity: Optional[float] = None
    has_pricing: bool = False
    authority_markers: int = 0
    friction_signals: int = 0
    sophistication_level: Optional[str] = None


@dataclass(frozen=True)
class BehavioralSignals(_Record):
    total_activities: int
    recent_activities: int
    high_intent_activities: int
    avg_action_gap_hours: Optional[float] = None
    engagement_velocity: Optional[str] = None


@dataclass(frozen=True)
class EconomicPotential(_Record):
    estimated_acv: int
    sales_cycle_estimate: str
    expansion_potential: str


@dataclass(frozen=True)
class ScoreResult(_Record):
    lead_id: str
    intent_score: float
    capacity_score: float
    efficiency_score: float
    ear_score: int
    routing_decision: RoutingDecision
    routing_reasoning: str
    identity_signals: IdentitySignals
    website_signals: WebsiteSignals
    behavioral_signals: BehavioralSignals
    source_trust_weight: float
    economic_potential: EconomicPotential
    risk_flags: Tuple[str, ...]
    nurture_track: Optional[str]
    requalify_at: Optional[datetime]
    scored_at: datetime


@dataclass(frozen=True)
class DateRange(_Record):
    start: datetime
    end: datetime
    reason: str


@dataclass(frozen=True)
class ReversalTiming(_Record):
    earliest_reentry: datetime
    optimal_reentry: datetime
    latest_reentry: datetime
    trigger_conditions: Tuple[str, ...]
    avoid_periods: Tuple[DateRange, ...]


@dataclass(frozen=True)
class StrategicMessaging(_Record):
    opening_hook: str
    value_proposition: str
    differentiator: str
    call_to_action: str
    objection_preemption: Tuple[str, ...]
    proof_elements: Tuple[str, ...]


@dataclass(frozen=True)
class ReversalStrategy(_Record):
    id: str
    name: str
    approach: ReversalApproach
    required_conditions: Tuple[str, ...]
    messaging: StrategicMessaging
    target_contacts: Tuple[str, ...]
    expected_outcome: str
    success_probability: float
    time_to_result: int  # days


@dataclass(frozen=True)
class TriggerEvent(_Record):
    type: TriggerType
    description: str
    monitoring_method: str
    probability: float
    expected_timeline: Optional[str] = None


@dataclass(frozen=True)
class ContactStep(_Record):
    day: int
    action: str
    channel: str
    message: str
    expected_response: str
    next_step_if_positive: str
    next_step_if_negative: str


@dataclass(frozen=True)
class EscalationStep(_Record):
    trigger: str
    action: str
    owner: str
    timeline: str


@dataclass(frozen=True)
class ReentryApproach(_Record):
    channel: str
    contact_sequence: Tuple[ContactStep, ...]
    escalation_path: Tuple[EscalationStep, ...]
    fallback_strategy: str


@dataclass(frozen=True)
class ReversalOpportunity(_Record):
    deal_id: str
    reversal_probability: float
    primary_reason: AbandonmentReason
    optimal_timing: ReversalTiming
    primary_strategy: ReversalStrategy
    alternative_strategies: Tuple[ReversalStrategy, ...]
    trigger_events: Tuple[TriggerEvent, ...]
    reentry_approach: ReentryApproach
    risk_factors: Tuple[RiskFlag, ...]
    estimated_value: float
    confidence_level: float
    analyzed_at: datetime


@dataclass(frozen=True)
class ReversalOutcome(_Record):
    """
    Feedback on a reversal attempt. Recorded append-only by the caller;
    nothing inside the engine reads it back.
    """
    deal_id: str
    attempt_date: datetime
    strategy_used: str
    result: str  # won | progressing | rejected | no_response
    new_opportunity_value: Optional[float] = None
    lessons_learned: Tuple[str, ...] = ()
    strategy_effectiveness: Optional[float] = None
    timing_accuracy: Optional[float] = None
    messaging_resonance: Optional[float] = None
