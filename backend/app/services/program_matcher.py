"""Diagnosis-to-Program Matcher.

Matches a patient's coded diagnoses against the billing program catalog
and ranks the programs the diagnoses support.

Matching rules (per program ``diagnosis_match_rules``):
- Exact code: "I10" matches "I10"
- Category prefix: "M79" matches "M79", "M79.3", "M79.604"
- Wildcard: "J44.*" matches "J44.0", "J44.9" (trailing ``*`` is a prefix)

Score = 100 * (weighted matched diagnoses) / (weighted total diagnoses),
primary diagnoses weighted ``primary_diagnosis_weight`` (2) and secondary
``secondary_diagnosis_weight`` (1).

Note: This is a decision support tool. Suggested programs are reviewed
by a clinician before any enrollment is created.
"""

import logging
import threading
from collections.abc import Iterable

from app.core.config import settings
from app.schemas.base import DiagnosisRole
from app.schemas.billing import BillingProgramDefinition, Diagnosis, DiagnosisEvidence, ProgramMatch
from app.services.scoring import percent

logger = logging.getLogger(__name__)


def normalize_rule(rule: str) -> str:
    """Reduce a match rule to the code prefix it stands for.

    >>> normalize_rule("j44.*")
    'J44.'
    >>> normalize_rule("M79")
    'M79'
    """
    return rule.strip().upper().rstrip("*")


def code_matches_rule(code: str, rule: str) -> bool:
    """Check if a diagnosis code equals or is prefixed by a rule."""
    prefix = normalize_rule(rule)
    if not prefix:
        return False
    return code.strip().upper().startswith(prefix)


def _dedupe_diagnoses(diagnoses: Iterable[Diagnosis]) -> list[Diagnosis]:
    """Collapse repeated codes, keeping the primary role when both appear."""
    by_code: dict[str, Diagnosis] = {}
    for dx in diagnoses:
        existing = by_code.get(dx.code)
        if existing is None or (existing.role != DiagnosisRole.PRIMARY and dx.role == DiagnosisRole.PRIMARY):
            by_code[dx.code] = dx
    return list(by_code.values())


class ProgramMatcher:
    """Ranks billing programs by the diagnoses that support them."""

    def __init__(
        self,
        primary_weight: int | None = None,
        secondary_weight: int | None = None,
    ) -> None:
        self._weights = {
            DiagnosisRole.PRIMARY: primary_weight if primary_weight is not None else settings.primary_diagnosis_weight,
            DiagnosisRole.SECONDARY: secondary_weight if secondary_weight is not None else settings.secondary_diagnosis_weight,
        }

    def weight_of(self, diagnosis: Diagnosis) -> int:
        return self._weights[diagnosis.role]

    def match_program(
        self,
        diagnoses: list[Diagnosis],
        program: BillingProgramDefinition,
    ) -> ProgramMatch:
        """Score a single program against an already de-duplicated list."""
        total_weight = sum(self.weight_of(dx) for dx in diagnoses)
        evidence: list[DiagnosisEvidence] = []
        unmatched: list[str] = []

        for dx in diagnoses:
            rule = next(
                (r for r in program.diagnosis_match_rules if code_matches_rule(dx.code, r)),
                None,
            )
            if rule is None:
                unmatched.append(dx.code)
                continue
            evidence.append(DiagnosisEvidence(
                code=dx.code,
                display=dx.display,
                role=dx.role,
                rule=rule,
                weight=self.weight_of(dx),
            ))

        matched_weight = sum(e.weight for e in evidence)

        return ProgramMatch(
            target_id=program.program_type,
            matched_items=[e.code for e in evidence],
            unmatched_items=unmatched,
            match_score=percent(matched_weight, total_weight),
            billing_program_code=program.billing_program_code,
            program_name=program.name,
            cpt_codes=list(program.cpt_codes),
            category=program.category,
            evidence=evidence,
        )

    def match_programs(
        self,
        diagnoses: Iterable[Diagnosis],
        catalog: Iterable[BillingProgramDefinition],
    ) -> list[ProgramMatch]:
        """Rank catalog programs supported by the diagnoses.

        Programs with no matching diagnosis are never returned. Results are
        sorted by score descending; equal scores keep catalog order.
        """
        unique = _dedupe_diagnoses(diagnoses)
        if not unique:
            return []

        matches = []
        for program in catalog:
            result = self.match_program(unique, program)
            if result.evidence:
                matches.append(result)

        # sort() is stable, so ties keep catalog declaration order
        matches.sort(key=lambda m: -m.match_score)

        logger.debug(
            f"Matched {len(matches)} programs from {len(unique)} diagnoses: "
            f"{[(m.target_id, m.match_score) for m in matches]}"
        )
        return matches

    def get_stats(self) -> dict:
        """Get service statistics."""
        return {
            "primary_weight": self._weights[DiagnosisRole.PRIMARY],
            "secondary_weight": self._weights[DiagnosisRole.SECONDARY],
        }


def match_programs(
    diagnoses: Iterable[Diagnosis],
    catalog: Iterable[BillingProgramDefinition],
) -> list[ProgramMatch]:
    """Match with the configured default weights."""
    return get_program_matcher().match_programs(diagnoses, catalog)


# ============================================================================
# Singleton Instance
# ============================================================================

_matcher_instance: ProgramMatcher | None = None
_matcher_lock = threading.Lock()


def get_program_matcher() -> ProgramMatcher:
    """Get the singleton program matcher instance."""
    global _matcher_instance
    if _matcher_instance is None:
        with _matcher_lock:
            if _matcher_instance is None:
                _matcher_instance = ProgramMatcher()
    return _matcher_instance


def reset_program_matcher() -> None:
    """Reset the singleton instance (for testing)."""
    global _matcher_instance
    with _matcher_lock:
        _matcher_instance = None
