"""
Validation of an assembled ClientProfile.

Rules are data. General rules always apply; a client type adds either its
category rules (gaming, technology, healthcare) or its named client-profile
rules (rackspace, activision). Issues are reported, never raised.

Score = 1.0 - 0.2 per error - 0.1 per warning, floored at 0.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from notes_parser.core.client_profiles import CLIENT_CATEGORIES, CLIENT_PROFILES
from notes_parser.core.merger import is_empty
from notes_parser.core.schemas import ClientProfile, ValidationIssue, ValidationResult


ERROR_PENALTY = 0.2
WARNING_PENALTY = 0.1


@dataclass(frozen=True)
class ValidationRule:
    field: str
    required: bool = False
    min_length: int = 0
    min_items: int = 0


GENERAL_RULES: Tuple[ValidationRule, ...] = (
    ValidationRule(field="client_name", required=True, min_length=2),
    ValidationRule(field="industry", required=False, min_length=3),
)

CATEGORY_RULES: Dict[str, Tuple[ValidationRule, ...]] = {
    name: tuple(ValidationRule(field=f, required=True, min_items=1) for f in category.required_fields)
    for name, category in CLIENT_CATEGORIES.items()
}

PROFILE_RULES: Dict[str, Tuple[ValidationRule, ...]] = {
    key: tuple(
        ValidationRule(field=f, required=True, min_items=1 if f not in ("client_name", "industry") else 0)
        for f in profile.required_fields
        if f != "sources"
    )
    for key, profile in CLIENT_PROFILES.items()
}


def rules_for(client_type: Optional[str]) -> List[ValidationRule]:
    rules = list(GENERAL_RULES)
    if client_type in CLIENT_PROFILES:
        rules.extend(r for r in PROFILE_RULES[client_type] if r.field not in {g.field for g in GENERAL_RULES})
    elif client_type in CATEGORY_RULES:
        rules.extend(CATEGORY_RULES[client_type])
    return rules


def _label(field: str) -> str:
    return field.replace("_", " ")


def check_rule(profile: ClientProfile, rule: ValidationRule) -> List[ValidationIssue]:
    value = getattr(profile, rule.field)
    issues = []
    if rule.required and is_empty(value):
        issues.append(ValidationIssue(
            field=rule.field,
            level="error",
            message=f"Required field '{rule.field}' is missing",
            suggestion=f"Ensure the document contains {_label(rule.field)} information",
        ))
    if isinstance(value, str) and value and rule.min_length and len(value) < rule.min_length:
        issues.append(ValidationIssue(
            field=rule.field,
            level="warning",
            message=f"Field '{rule.field}' seems too short",
            suggestion=f"Verify {_label(rule.field)} is complete",
        ))
    if isinstance(value, list) and value and rule.min_items and len(value) < rule.min_items:
        issues.append(ValidationIssue(
            field=rule.field,
            level="warning",
            message=f"Field '{rule.field}' has fewer items than expected",
            suggestion=f"Check if all {_label(rule.field)} were extracted",
        ))
    return issues


def calculate_validation_score(issues: List[ValidationIssue]) -> float:
    errors = sum(1 for issue in issues if issue.level == "error")
    warnings = sum(1 for issue in issues if issue.level == "warning")
    return max(0.0, round(1.0 - errors * ERROR_PENALTY - warnings * WARNING_PENALTY, 6))


class ParsingValidator:
    """Applies the rule tables for a document's client type."""

    def validate(self, profile: ClientProfile, document_type: str, client_type: Optional[str] = None) -> ValidationResult:
        issues: List[ValidationIssue] = []
        for rule in rules_for(client_type):
            issues.extend(check_rule(profile, rule))

        client_profile = CLIENT_PROFILES.get(client_type or "")
        if client_profile and "sources" in client_profile.required_fields and not profile.sources.all_sources():
            issues.append(ValidationIssue(
                field="sources",
                level="error",
                message=f"{client_type.capitalize()} clients require source lists",
                suggestion="Add a Highlighted Sources section",
            ))

        return ValidationResult(
            is_valid=not any(issue.level == "error" for issue in issues),
            issues=issues,
            score=calculate_validation_score(issues),
        )
