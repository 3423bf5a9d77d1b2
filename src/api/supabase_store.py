"""
Supabase Store for Washroom Quote

Loads the calculator's rates, fixture and brand catalogs from Supabase and
persists submitted estimates. Rate loading falls back to the built-in
pricing when Supabase cannot be reached, and says so.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from supabase import Client, ClientOptions, create_client

from calculator import (
    BrandCatalog,
    FixtureCatalog,
    FixtureCategory,
    PricingContext,
    PricingDatabase,
    RateConfig,
    SubmissionRecord,
    SubmissionStatus,
)

load_dotenv()

logger = logging.getLogger(__name__)

# Supabase configuration
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
SUPABASE_TIMEOUT_SECONDS = float(os.getenv("SUPABASE_TIMEOUT_SECONDS", "10"))
SETTINGS_CATEGORY = os.getenv("SETTINGS_CATEGORY", "calculator")

# Initialize Supabase client (will be None if not configured)
supabase: Optional[Client] = None


def get_supabase_client() -> Optional[Client]:
    """Get or create Supabase client."""
    global supabase
    if supabase is None and SUPABASE_URL and SUPABASE_SERVICE_KEY:
        supabase = create_client(
            SUPABASE_URL,
            SUPABASE_SERVICE_KEY,
            options=ClientOptions(postgrest_client_timeout=SUPABASE_TIMEOUT_SECONDS),
        )
    return supabase


class StoreError(RuntimeError):
    """A Supabase read or write failed."""


class SubmissionNotFoundError(StoreError):
    """No submission has the requested id."""


class PricingStore:
    """Rates and catalogs backed by the settings, fixtures and brands tables."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client if client is not None else get_supabase_client()
        if not self.client:
            logger.warning("Supabase client not initialized; pricing will use built-in defaults")

    def fetch_rates(self) -> RateConfig:
        """Get calculator rates from the settings table."""
        result = (
            self.client.table("settings")
            .select("*")
            .eq("category", SETTINGS_CATEGORY)
            .limit(1)
            .execute()
        )
        settings = result.data[0].get("settings") if result.data else None
        return RateConfig.from_settings(settings)

    def fetch_fixtures(self, category: FixtureCategory) -> FixtureCatalog:
        """Get all fixtures of one type."""
        result = (
            self.client.table("fixtures")
            .select("*")
            .eq("type", category.value)
            .order("name")
            .execute()
        )
        return FixtureCatalog.from_rows(category, result.data)

    def fetch_brands(self) -> BrandCatalog:
        result = self.client.table("brands").select("*").order("name").execute()
        return BrandCatalog.from_rows(result.data)

    def load_pricing_context(self) -> PricingContext:
        """
        Fetch a complete pricing snapshot.

        Any failure (no client, network error, timeout, bad data) returns the
        built-in pricing with using_defaults=True so a quote can still be given.
        """
        if not self.client:
            return PricingDatabase.default_pricing_context()

        try:
            context = PricingContext(
                rates=self.fetch_rates().validate(),
                electrical=self.fetch_fixtures(FixtureCategory.ELECTRICAL),
                additional=self.fetch_fixtures(FixtureCategory.BATHROOM),
                brands=self.fetch_brands(),
            )
        except Exception as e:
            logger.warning(
                "Error loading pricing, using built-in defaults: %s", e,
                extra={"using_defaults": True},
            )
            return PricingDatabase.default_pricing_context()

        logger.info(
            "Loaded pricing: %d electrical fixtures, %d additional fixtures, %d brands",
            len(context.electrical), len(context.additional), len(context.brands),
        )
        return context


class SubmissionStore:
    """Submitted estimates backed by the submissions table."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client if client is not None else get_supabase_client()

    def _require_client(self) -> Client:
        if not self.client:
            raise StoreError("Supabase client not initialized. Check SUPABASE_URL and SUPABASE_SERVICE_KEY.")
        return self.client

    def save(self, record: SubmissionRecord) -> str:
        """Insert a submission and return its new id."""
        client = self._require_client()
        try:
            result = client.table("submissions").insert(record.to_row()).execute()
        except Exception as e:
            logger.error("Error saving submission: %s", e)
            raise StoreError(f"Could not save submission: {e}") from e

        if not result.data:
            raise StoreError("Could not save submission: no row returned")
        submission_id = str(result.data[0]["id"])
        logger.info("Saved submission %s", submission_id, extra={"submission_id": submission_id})
        return submission_id

    def list_submissions(self, status: Optional[SubmissionStatus] = None) -> List[SubmissionRecord]:
        """Get submissions, newest first, optionally filtered by status."""
        client = self._require_client()
        try:
            query = client.table("submissions").select("*")
            if status is not None:
                query = query.eq("status", SubmissionStatus(status).value)
            result = query.order("submitted_at", desc=True).execute()
        except Exception as e:
            logger.error("Error listing submissions: %s", e)
            raise StoreError(f"Could not list submissions: {e}") from e

        return [SubmissionRecord.from_row(row) for row in result.data or []]

    def update_status(self, submission_id: str, status: SubmissionStatus) -> Dict[str, Any]:
        """Change a lead's status."""
        client = self._require_client()
        status = SubmissionStatus(status)
        try:
            result = (
                client.table("submissions")
                .update({"status": status.value})
                .eq("id", submission_id)
                .execute()
            )
        except Exception as e:
            logger.error("Error updating submission %s: %s", submission_id, e)
            raise StoreError(f"Could not update submission: {e}") from e

        if not result.data:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return result.data[0]


# Global store instances
pricing_store = PricingStore()
submission_store = SubmissionStore()
