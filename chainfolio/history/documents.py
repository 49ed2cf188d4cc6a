"""Mapping between HistoryRecord and its stored document shape."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..models import HistoryRecord, InsightAssessment, UserProfile


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def record_to_document(record: HistoryRecord) -> dict[str, Any]:
    assessment = record.assessment.to_dict()
    return {
        "walletAddress": record.wallet_address.lower(),
        "timestamp": record.timestamp,
        "portfolioSnapshot": {
            "totalValue": record.total_value,
            "balances": list(record.balances),
            "connectedChains": record.connected_chains,
        },
        "analysis": {
            "healthScore": assessment["healthScore"],
            "riskLevel": assessment["riskLevel"],
            "summary": assessment["summary"],
            **assessment["analysis"],
        },
        "recommendations": assessment["recommendations"],
        "topPick": assessment["topPick"],
        "userProfile": record.user_profile.to_dict() if record.user_profile else None,
        "marketContext": dict(record.market_context),
        "expiresAt": record.expires_at,
    }


def record_from_document(doc: dict[str, Any]) -> HistoryRecord:
    snapshot = doc.get("portfolioSnapshot") or {}
    analysis = doc.get("analysis") or {}
    assessment = InsightAssessment.from_dict(
        {
            "summary": analysis.get("summary") or "",
            "healthScore": analysis.get("healthScore"),
            "riskLevel": analysis.get("riskLevel"),
            "analysis": analysis,
            "recommendations": doc.get("recommendations") or [],
            "topPick": doc.get("topPick") or {},
        }
    )
    profile = doc.get("userProfile")
    return HistoryRecord(
        record_id=str(doc.get("_id", "")),
        wallet_address=doc["walletAddress"],
        timestamp=_aware(doc["timestamp"]),
        total_value=float(snapshot.get("totalValue") or 0),
        connected_chains=int(snapshot.get("connectedChains") or 0),
        balances=tuple(snapshot.get("balances") or ()),
        assessment=assessment,
        user_profile=UserProfile.from_dict(profile) if profile else None,
        market_context=dict(doc.get("marketContext") or {}),
        expires_at=_aware(doc.get("expiresAt")),
    )
