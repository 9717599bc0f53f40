"""Services for the Care Continuity Engine.

Services implement business logic and data processing:
- MetricSetResolver: fresh observations per metric
- TemplateMatchScorer: template coverage scoring and ranking
- ProgramMatcher: diagnosis-to-billing-program matching
- SuggestionLifecycleManager: suggestion review and enrollment
- ReuseContinuityAdvisor: reuse vs. re-collect advice
- BillingPackageSuggester: billing-package suggestion generation
"""

from app.services.clinical_data import ClinicalDataServiceInterface
from app.services.clinical_data_db import DatabaseClinicalDataService
from app.services.metric_resolver import MetricSetResolver, select_most_recent, window_from_hours
from app.services.template_scorer import (
    TemplateMatchScorer,
    get_template_scorer,
    rank_templates,
    score_template,
)
from app.services.program_matcher import (
    ProgramMatcher,
    get_program_matcher,
    match_programs,
)
from app.services.suggestion_state import SuggestionState
from app.services.suggestion_lifecycle import SuggestionLifecycleManager
from app.services.continuity_advisor import ReuseContinuityAdvisor
from app.services.package_suggester import BillingPackageSuggester

__all__ = [
    # Clinical data
    "ClinicalDataServiceInterface",
    "DatabaseClinicalDataService",
    # Resolver
    "MetricSetResolver",
    "select_most_recent",
    "window_from_hours",
    # Template scoring
    "TemplateMatchScorer",
    "get_template_scorer",
    "rank_templates",
    "score_template",
    # Program matching
    "ProgramMatcher",
    "get_program_matcher",
    "match_programs",
    # Suggestions
    "SuggestionState",
    "SuggestionLifecycleManager",
    "BillingPackageSuggester",
    # Continuity
    "ReuseContinuityAdvisor",
]
