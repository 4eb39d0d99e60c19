"""
💾 DECISION STORE
=================
Caller-side persistence for engine decisions, backed by Supabase.
Handles all Supabase interactions with retry logic and error handling.

The engine itself never touches this module; callers save what it returns.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from supabase import Client, create_client
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import DatabaseSettings
from engine.errors import ConfigurationError
from engine.models import (
    DormancyClassification,
    ReversalOpportunity,
    ReversalOutcome,
    RoutingDecision,
    ScoreResult,
    as_utc,
)

MODEL_VERSION = "v1.0"

# Transient API failures are retried; missing credentials are not.
_with_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(ConfigurationError),
    reraise=True
)


class DecisionStore:
    """
    Supabase storage for classifications, lead scores and reversal analyses.

    Usage:
        from database.connection import DecisionStore

        store = DecisionStore()
        store.save_classification(classification)

        # Skip rescoring leads scored in the last 24 hours
        cached = store.get_recent_lead_score("lead-123")
        if cached is None:
            store.save_lead_score("lead-123", "org-1", engine.score_and_route_lead(lead))
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        settings: Optional[DatabaseSettings] = None,
    ):
        self.settings = settings or DatabaseSettings()
        self._client = client

    def _initialize_client(self):
        """Initialize the Supabase client."""
        url = self.settings.supabase_url
        key = self.settings.supabase_key

        if not url or not key:
            logger.warning("⚠️ Supabase credentials not configured!")
            logger.info("Set SUPABASE_URL and SUPABASE_KEY in your .env file")
            raise ConfigurationError("Supabase credentials not configured", field="supabase_url")

        try:
            self._client = create_client(url, key)
            logger.info("✅ Connected to Supabase successfully")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Supabase: {e}")
            raise

    @property
    def client(self) -> Client:
        """Get the Supabase client, initializing if needed."""
        if self._client is None:
            self._initialize_client()
        return self._client

    def _execute(self, action: str, table: str, request) -> Optional[Dict]:
        """Run a built request and return its first row."""
        try:
            response = request.execute()
        except Exception as e:
            logger.error(f"{action.capitalize()} error in {table}: {e}")
            raise
        if not response.data:
            return None
        logger.debug(f"{action.capitalize()} ok in {table}")
        return response.data[0]

    @_with_retry
    def insert(self, table: str, data: Dict[str, Any]) -> Optional[Dict]:
        """Append one row; used for outcome history."""
        request = self.client.table(table).insert(self._serialize_data(data))
        return self._execute("insert", table, request)

    @_with_retry
    def upsert(self, table: str, data: Dict[str, Any], conflict_columns: List[str]) -> Optional[Dict]:
        """
        Write the latest decision for a key, replacing any earlier one.

        Args:
            table: Decision table
            data: Row to write
            conflict_columns: Key columns (lead_id or deal_id)
        """
        request = (
            self.client
            .table(table)
            .upsert(self._serialize_data(data), on_conflict=",".join(conflict_columns))
        )
        return self._execute("upsert", table, request)

    @_with_retry
    def update(self, table: str, id: str, data: Dict[str, Any]) -> Optional[Dict]:
        """Patch a row by primary key."""
        request = self.client.table(table).update(self._serialize_data(data)).eq("id", id)
        return self._execute("update", table, request)

    @_with_retry
    def query(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict]:
        """Equality-filtered select; prefix order_by with - for newest first."""
        request = self.client.table(table).select("*")
        for col, val in filters.items():
            request = request.eq(col, val)
        if order_by:
            request = request.order(order_by.lstrip("-"), desc=order_by.startswith("-"))
        if limit:
            request = request.limit(limit)

        try:
            return request.execute().data
        except Exception as e:
            logger.error(f"Query error in {table}: {e}")
            raise

    @staticmethod
    def _serialize_data(data: Dict[str, Any]) -> Dict[str, Any]:
        """Timestamps go over the wire as ISO strings."""
        return {
            key: value.isoformat() if isinstance(value, (datetime, date)) else value
            for key, value in data.items()
        }

    # ===================================
    # DECISION RECORDS
    # ===================================

    def save_classification(self, classification: DormancyClassification) -> Optional[Dict]:
        """Save the latest dormancy classification for a lead (one row per lead)."""
        return self.upsert(
            "dormancy_classifications",
            classification.to_dict(),
            conflict_columns=["lead_id"]
        )

    def save_lead_score(
        self,
        lead_id: str,
        organization_id: Optional[str],
        result: ScoreResult
    ) -> Optional[Dict]:
        """
        Save an EAR score and copy the routing fields onto the lead.

        Returns:
            The saved lead_scores row
        """
        row = result.to_dict()
        row.update({
            "lead_id": lead_id,
            "organization_id": organization_id,
            "model_version": MODEL_VERSION,
        })
        saved = self.upsert("lead_scores", row, conflict_columns=["lead_id"])

        nurtured = result.routing_decision == RoutingDecision.NURTURE
        self.update("leads", lead_id, {
            "ear_score": result.ear_score,
            "intent_score": result.intent_score,
            "nurture_track": result.nurture_track if nurtured else None,
            "requalify_at": result.requalify_at if nurtured else None,
        })
        return saved

    def get_recent_lead_score(
        self,
        lead_id: str,
        max_age_hours: float = 24,
        now: Optional[datetime] = None
    ) -> Optional[Dict]:
        """
        Most recent score for a lead, if it is younger than max_age_hours.

        Returns:
            The cached lead_scores row, or None when the lead needs rescoring
        """
        rows = self.query("lead_scores", filters={"lead_id": lead_id}, order_by="-scored_at", limit=1)
        if not rows or not rows[0].get("scored_at"):
            return None

        row = rows[0]
        scored_at = row["scored_at"]
        if isinstance(scored_at, str):
            scored_at = datetime.fromisoformat(scored_at.replace("Z", "+00:00"))
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)

        if now - as_utc(scored_at) < timedelta(hours=max_age_hours):
            logger.debug(f"Using cached score for lead {lead_id}")
            return row
        return None

    def save_reversal_opportunity(self, opportunity: ReversalOpportunity) -> Optional[Dict]:
        return self.upsert(
            "reversal_opportunities",
            opportunity.to_dict(),
            conflict_columns=["deal_id"]
        )

    def record_reversal_outcome(self, outcome: ReversalOutcome) -> Optional[Dict]:
        """Append a reversal attempt outcome. Rows are never updated."""
        return self.insert("reversal_outcomes", outcome.to_dict())
