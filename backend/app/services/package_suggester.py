"""Billing package suggester.

Turns a patient's diagnoses into a PENDING billing-package suggestion:
loads the active program catalog, ranks it with the program matcher,
applies the organization's filters and hands the candidates to the
lifecycle manager.
"""

import logging
from collections.abc import Iterable

from app.core.config import settings
from app.core.exceptions import DuplicateSuggestionError
from app.schemas.base import SuggestionKind, SuggestionSource
from app.schemas.billing import DiagnosisEvidence, ProgramMatch
from app.schemas.suggestion import Suggestion
from app.services.clinical_data import ClinicalDataServiceInterface
from app.services.program_matcher import ProgramMatcher, get_program_matcher
from app.services.suggestion_lifecycle import SuggestionLifecycleManager

logger = logging.getLogger(__name__)


def pending_key_for(patient_id: str, kind: SuggestionKind) -> str:
    """Key shared by every PENDING suggestion of one kind for one patient."""
    return f"{patient_id}:{kind.value}"


def filter_candidates(
    matches: list[ProgramMatch],
    min_score: int = 0,
    supported_programs: Iterable[str] | None = None,
    max_candidates: int | None = None,
) -> list[ProgramMatch]:
    """Apply score floor, organization program filter and cap, keeping rank order.

    An empty or missing ``supported_programs`` means no filter.
    """
    supported = {p.strip().upper() for p in supported_programs or [] if p.strip()}
    kept = [m for m in matches if m.match_score >= min_score]
    if supported:
        kept = [m for m in kept if m.target_id.upper() in supported]
    if max_candidates is not None:
        kept = kept[:max(0, max_candidates)]
    return kept


def collect_evidence(matches: Iterable[ProgramMatch]) -> list[DiagnosisEvidence]:
    """Unique diagnoses across all candidates, first occurrence wins."""
    seen: set[str] = set()
    evidence = []
    for match in matches:
        for item in match.evidence:
            if item.code not in seen:
                seen.add(item.code)
                evidence.append(item)
    return evidence


class BillingPackageSuggester:
    """Generates billing-package suggestions for review.

    Usage:
        suggester = BillingPackageSuggester(DatabaseClinicalDataService(session), SuggestionLifecycleManager(session))
        suggestion = suggester.suggest_billing_packages(patient_id, supported_programs=["RPM", "CCM"])
    """

    def __init__(
        self,
        data_service: ClinicalDataServiceInterface,
        lifecycle: SuggestionLifecycleManager,
        matcher: ProgramMatcher | None = None,
    ) -> None:
        self._data = data_service
        self._lifecycle = lifecycle
        self._matcher = matcher or get_program_matcher()

    def match_patient_programs(self, patient_id: str) -> list[ProgramMatch]:
        """Rank active catalog programs for a patient without persisting anything."""
        self._data.ensure_patient(patient_id)
        diagnoses = self._data.list_diagnoses(patient_id)
        catalog = self._data.list_program_catalog(active_only=True)
        return self._matcher.match_programs(diagnoses, catalog)

    def suggest_billing_packages(
        self,
        patient_id: str,
        supported_programs: list[str] | None = None,
        source_type: SuggestionSource = SuggestionSource.MANUAL,
        source_id: str | None = None,
    ) -> Suggestion | None:
        """Create a PENDING suggestion for the patient's matching programs.

        Returns the patient's existing PENDING billing-package suggestion
        instead of creating a duplicate, and ``None`` when no program
        qualifies.

        Raises:
            NotFoundError: Unknown patient.
        """
        matches = self.match_patient_programs(patient_id)
        candidates = filter_candidates(
            matches,
            min_score=settings.suggestion_min_match_score,
            supported_programs=supported_programs,
            max_candidates=settings.max_candidate_programs,
        )
        if not candidates:
            logger.info(
                f"No billing programs qualify for patient_id={patient_id} "
                f"({len(matches)} matched before filtering)"
            )
            return None

        existing = self._existing_pending(patient_id)
        if existing is not None:
            return existing

        try:
            return self._lifecycle.create_suggestion(
                patient_id=patient_id,
                kind=SuggestionKind.BILLING_PACKAGE,
                match_results=candidates,
                matched_diagnoses=collect_evidence(candidates),
                metadata={
                    "supported_programs": list(supported_programs or []),
                    "catalog_matches": len(matches),
                    "min_match_score": settings.suggestion_min_match_score,
                },
                source_type=source_type,
                source_id=source_id,
                pending_key=pending_key_for(patient_id, SuggestionKind.BILLING_PACKAGE),
            )
        except DuplicateSuggestionError:
            existing = self._existing_pending(patient_id)
            if existing is None:
                raise
            return existing

    def _existing_pending(self, patient_id: str) -> Suggestion | None:
        pending = self._lifecycle.list_pending(patient_id, kind=SuggestionKind.BILLING_PACKAGE)
        if not pending:
            return None
        logger.info(f"Patient {patient_id} already has pending suggestion {pending[0].id}")
        return pending[0]
