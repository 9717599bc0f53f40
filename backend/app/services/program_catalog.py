"""Default CMS 2025 billing program catalog.

Reference data used to seed the ``billing_programs`` table. The catalog
is curated by administrators after seeding; the engine reads whatever
the table holds at request time.
"""

from typing import Any

from app.schemas.billing import BillingProgramDefinition

# ============================================================================
# Program Definitions
# ============================================================================

# Declaration order is the tie-break order for equal match scores.
DEFAULT_PROGRAMS: list[dict[str, Any]] = [
    {
        "program_type": "RPM",
        "billing_program_code": "CMS_RPM_2025",
        "name": "Remote Patient Monitoring",
        "cpt_codes": ["99453", "99454", "99457", "99458"],
        "category": "DEVICE_MONITORING",
        "diagnosis_match_rules": [
            "I10",    # Essential hypertension
            "I11",    # Hypertensive heart disease
            "I50",    # Heart failure
            "E11",    # Type 2 diabetes mellitus
            "E10",    # Type 1 diabetes mellitus
            "J44",    # COPD
            "J45",    # Asthma
            "E66",    # Obesity
            "I48",    # Atrial fibrillation
        ],
    },
    {
        "program_type": "RTM",
        "billing_program_code": "CMS_RTM_2025",
        "name": "Remote Therapeutic Monitoring",
        "cpt_codes": ["98975", "98976", "98977", "98980", "98981"],
        "category": "THERAPEUTIC_MONITORING",
        "diagnosis_match_rules": [
            "M79",    # Other soft tissue disorders (incl. fibromyalgia M79.7)
            "M54",    # Dorsalgia
            "M17",    # Osteoarthritis of knee
            "M16",    # Osteoarthritis of hip
            "M06",    # Rheumatoid arthritis
            "G89",    # Chronic pain
            "J44",    # COPD
            "J45",    # Asthma
            "K58",    # Irritable bowel syndrome
            "K21",    # GERD
            "L89",    # Pressure ulcer
            "L97",    # Non-pressure chronic ulcer of lower limb
        ],
    },
    {
        "program_type": "CCM",
        "billing_program_code": "CMS_CCM_2025",
        "name": "Chronic Care Management",
        "cpt_codes": ["99490", "99439", "99491"],
        "category": "CARE_COORDINATION",
        "diagnosis_match_rules": [
            "I10",
            "I50",
            "E11",
            "N18",    # Chronic kidney disease
            "J44",
            "F32",    # Major depressive disorder
            "F41",    # Anxiety disorder
            "M06",
            "I25",    # Chronic ischemic heart disease
        ],
    },
]


def default_catalog() -> list[BillingProgramDefinition]:
    """Build validated definitions for the default catalog."""
    return [
        BillingProgramDefinition(display_order=position, **program)
        for position, program in enumerate(DEFAULT_PROGRAMS)
    ]
