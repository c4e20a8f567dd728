"""
Eligibility Service - does a student satisfy a company's criteria?

Criteria come from the company's `eligibility_criteria`, overridden by the
currently open application window where the window sets a value.
Checks run in a fixed order:
    window open -> not placed -> CGPA -> backlogs -> branch -> batch
"""

from datetime import datetime
from typing import Optional, List, Dict, Any


def effective_criteria(company: dict, window: Optional[dict] = None) -> dict:
    """Merge company criteria with the open window's overrides."""
    base = company.get("eligibility_criteria") or {}
    criteria = {
        "min_cgpa": base.get("min_cgpa"),
        "max_backlogs": base.get("max_backlogs"),
        "eligible_branches": list(base.get("eligible_branches") or base.get("allowed_branches") or []),
        "allowed_batches": list(base.get("allowed_batches") or []),
        "allow_placed": bool(base.get("allow_placed", False)),
    }
    if window:
        if window.get("min_cgpa") is not None:
            criteria["min_cgpa"] = window["min_cgpa"]
        if window.get("max_backlogs") is not None:
            criteria["max_backlogs"] = window["max_backlogs"]
        if window.get("eligible_branches"):
            criteria["eligible_branches"] = list(window["eligible_branches"])
        if window.get("passing_year"):
            criteria["allowed_batches"] = [window["passing_year"]]
    return criteria


def evaluate_student(
    student: dict,
    criteria: dict,
    window: Optional[dict] = None,
    require_window: bool = False
) -> Dict[str, Any]:
    """
    Run every check and collect the failures in order.

    Returns:
        {eligible, reason (first failure or None), reasons, criteria: [{criterion, required, actual, passed}]}
    """
    checks: List[dict] = []

    def check(name: str, required: Any, actual: Any, passed: bool, reason: str):
        checks.append({
            "criterion": name,
            "required": required,
            "actual": actual,
            "passed": passed,
            "reason": None if passed else reason
        })

    if require_window:
        check("application_window", "open", "open" if window else "closed",
              window is not None, "No active application window for this company")

    if not criteria.get("allow_placed"):
        placed = bool(student.get("placed"))
        check("placement_status", "not placed", "placed" if placed else "not placed",
              not placed, "Student is already placed")

    min_cgpa = criteria.get("min_cgpa")
    if min_cgpa is not None:
        cgpa = student.get("cgpa", 0)
        check("cgpa", min_cgpa, cgpa, cgpa >= min_cgpa,
              f"CGPA {cgpa} is below the required minimum of {min_cgpa}")

    max_backlogs = criteria.get("max_backlogs")
    if max_backlogs is not None:
        backlogs = student.get("backlogs", 0)
        check("backlogs", max_backlogs, backlogs, backlogs <= max_backlogs,
              f"Number of backlogs ({backlogs}) exceeds the maximum allowed ({max_backlogs})")

    branches = criteria.get("eligible_branches") or []
    if branches:
        branch = student.get("branch")
        check("branch", branches, branch, branch in branches,
              f"Branch {branch} is not eligible for this company")

    batches = criteria.get("allowed_batches") or []
    if batches:
        batch = student.get("batch")
        check("batch", batches, batch, batch in batches,
              f"Batch {batch} is not eligible for this company")

    reasons = [c["reason"] for c in checks if not c["passed"]]
    return {
        "eligible": not reasons,
        "reason": reasons[0] if reasons else None,
        "reasons": reasons,
        "criteria": checks
    }


def build_eligibility_filter(criteria: dict) -> dict:
    """Mongo filter selecting the students that satisfy the criteria."""
    query: Dict[str, Any] = {}
    if not criteria.get("allow_placed"):
        query["placed"] = False
    if criteria.get("min_cgpa") is not None:
        query["cgpa"] = {"$gte": criteria["min_cgpa"]}
    if criteria.get("max_backlogs") is not None:
        query["backlogs"] = {"$lte": criteria["max_backlogs"]}
    if criteria.get("eligible_branches"):
        query["branch"] = {"$in": list(criteria["eligible_branches"])}
    if criteria.get("allowed_batches"):
        query["batch"] = {"$in": list(criteria["allowed_batches"])}
    return query


def recommendations_for(result: dict) -> List[str]:
    """Advice for each failed check."""
    advice = {
        "application_window": "Wait for the company's application window to open",
        "placement_status": "Placed students cannot apply to further companies",
        "cgpa": "Focus on improving your CGPA in upcoming semesters",
        "backlogs": "Clear your pending backlogs to become eligible",
        "branch": "Look for companies that recruit from your branch",
        "batch": "Look for companies hiring from your batch",
    }
    return [advice[c["criterion"]] for c in result["criteria"] if not c["passed"]]


def next_steps_for(result: dict, company: dict, existing_application: Optional[dict], now: datetime) -> List[str]:
    if existing_application:
        return [f"Track your application status (currently {existing_application['status']})"]
    if not result["eligible"]:
        return ["Review the unmet criteria and explore other companies"]
    deadline = company.get("application_deadline")
    steps = ["Review the company details and job description", "Keep your resume up to date"]
    if deadline and deadline >= now:
        steps.append(f"Apply before {deadline.strftime('%Y-%m-%d')}")
    return steps
