from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict

from contentguard.models import Verdict


stats: Dict = {
    "total_checked": 0,
    "total_flagged": 0,
    "last_24h": 0,
    "structural_rejections": 0,
    "violations": defaultdict(int),
    "severity_counts": defaultdict(int),
    "escalation_failures": 0,
    "last_reset": datetime.now(),
}


def roll_24h_if_needed() -> None:
    if datetime.now() - stats["last_reset"] > timedelta(hours=24):
        stats["last_24h"] = 0
        stats["last_reset"] = datetime.now()


def record_verdict(verdict: Verdict) -> None:
    roll_24h_if_needed()
    stats["total_checked"] += 1
    if not verdict.flagged:
        return
    stats["total_flagged"] += 1
    stats["last_24h"] += 1
    if not verdict.success:
        stats["structural_rejections"] += 1
    for kind in verdict.kinds:
        stats["violations"][kind] += 1
    if verdict.severity_level:
        stats["severity_counts"][verdict.severity_level] += 1


def record_escalation_failures(count: int) -> None:
    stats["escalation_failures"] += count


def snapshot() -> Dict:
    roll_24h_if_needed()
    return {
        "total_checked": stats["total_checked"],
        "total_flagged": stats["total_flagged"],
        "last_24h": stats["last_24h"],
        "structural_rejections": stats["structural_rejections"],
        "violations": dict(stats["violations"]),
        "severity_counts": dict(stats["severity_counts"]),
        "escalation_failures": stats["escalation_failures"],
        "last_reset": stats["last_reset"].isoformat(),
    }
