"""
Washroom Quote - Submission Records

A submission is the persisted result of one completed wizard run: the
selections, the breakdown they produced and the lead's follow-up status.
"""

from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .cost_estimator import CustomerDetails, EstimateBreakdown, SelectionSet


class SubmissionStatus(Enum):
    """Lead status, changed only from the admin side."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    NOT_INTERESTED = "not-interested"


@dataclass(frozen=True)
class SubmissionRecord:
    """One saved estimate."""
    customer_details: CustomerDetails
    estimate_amount: float
    form_data: SelectionSet
    breakdown: EstimateBreakdown
    status: SubmissionStatus
    submitted_at: str
    id: Optional[str] = None

    def with_status(self, status) -> "SubmissionRecord":
        return replace(self, status=SubmissionStatus(status))

    def with_id(self, record_id) -> "SubmissionRecord":
        return replace(self, id=str(record_id))

    def to_row(self) -> Dict[str, Any]:
        """Row for the `submissions` table (id is assigned by the store)."""
        return {
            "customer_details": asdict(self.customer_details),
            "estimate_amount": self.estimate_amount,
            "form_data": self.form_data.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "status": self.status.value,
            "submitted_at": self.submitted_at,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SubmissionRecord":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            customer_details=CustomerDetails(**(row.get("customer_details") or {})),
            estimate_amount=float(row["estimate_amount"]),
            form_data=SelectionSet.from_dict(row.get("form_data") or {}),
            breakdown=EstimateBreakdown.from_dict(row["breakdown"]),
            status=SubmissionStatus(row.get("status") or SubmissionStatus.NEW.value),
            submitted_at=row["submitted_at"],
        )


def build_submission(
    selections: SelectionSet,
    breakdown: EstimateBreakdown,
    now: Optional[datetime] = None,
) -> SubmissionRecord:
    """Package a finished estimate as a new lead."""
    submitted_at = (now or datetime.now(timezone.utc)).isoformat()
    return SubmissionRecord(
        customer_details=selections.customer,
        estimate_amount=breakdown.total,
        form_data=selections,
        breakdown=breakdown,
        status=SubmissionStatus.NEW,
        submitted_at=submitted_at,
    )


def summarize_submissions(records: Iterable[SubmissionRecord]) -> Dict[str, Any]:
    """Dashboard numbers: count per status plus total and average estimate."""
    by_status = {status.value: 0 for status in SubmissionStatus}
    count = 0
    total_amount = 0.0
    for record in records:
        by_status[record.status.value] += 1
        count += 1
        total_amount += record.estimate_amount

    return {
        "total_submissions": count,
        "by_status": by_status,
        "total_estimate_amount": total_amount,
        "average_estimate_amount": total_amount / count if count else 0.0,
    }
