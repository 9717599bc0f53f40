"""Tests for the billing program catalog seed."""

from sqlalchemy import select

from app.models import BillingProgram
from app.scripts.seed_program_catalog import upsert_programs
from app.services.program_catalog import default_catalog


class TestUpsertPrograms:
    """Tests for upsert_programs."""

    def test_inserts_default_catalog(self, db_session) -> None:
        counts = upsert_programs(db_session, default_catalog())

        assert counts == {"inserted": 3, "updated": 0, "skipped": 0}
        codes = db_session.execute(select(BillingProgram.billing_program_code)).scalars().all()
        assert sorted(codes) == ["CMS_CCM_2025", "CMS_RPM_2025", "CMS_RTM_2025"]

    def test_reseed_keeps_admin_edits(self, db_session) -> None:
        upsert_programs(db_session, default_catalog())
        rpm = db_session.execute(
            select(BillingProgram).where(BillingProgram.program_type == "RPM")
        ).scalar_one()
        rpm.diagnosis_match_rules = ["I10"]
        db_session.flush()

        counts = upsert_programs(db_session, default_catalog())

        assert counts == {"inserted": 0, "updated": 0, "skipped": 3}
        assert rpm.diagnosis_match_rules == ["I10"]

    def test_update_overwrites_existing(self, db_session) -> None:
        upsert_programs(db_session, default_catalog())
        rpm = db_session.execute(
            select(BillingProgram).where(BillingProgram.program_type == "RPM")
        ).scalar_one()
        rpm.is_active = False
        db_session.flush()

        counts = upsert_programs(db_session, default_catalog(), update_existing=True)

        assert counts == {"inserted": 0, "updated": 3, "skipped": 0}
        assert rpm.is_active is True
