#!/usr/bin/env python3
"""
Dummy Data Generator for the Case & Report Tracker

This script fills one user's workspace with realistic cases, reports and
prosecutors through the application's own stores, so the data lands in
whichever persistence backends are configured.

Usage:
    python generate_dummy_data.py --user EMAIL [--owner-id ID] [--cases N] [--reports N]
                                  [--backends local|postgres,local] [--prosecutors-file PATH]

Options:
    --user              Workspace owner (email) the records belong to
    --owner-id          Account id owning the generated prosecutors
    --cases N           Number of cases to generate (default: 40)
    --reports N         Number of reports to generate (default: 30)
    --backends          Ordered persistence backends (default: from PERSISTENCE_BACKENDS)
    --prosecutors-file  Also write the prosecutors as a seed file for the static provider
"""

import argparse
import json
import logging
import random
import sys
from datetime import date, timedelta

from faker import Faker

from casetrack.config.settings import Config
from casetrack.models.entities import CaseStage, PreventiveMeasure, ReportStage
from casetrack.services.case_store import CaseStore
from casetrack.services.database import DatabaseConnection
from casetrack.services.penal_code import PENAL_CODE, format_penal_code_display
from casetrack.services.persistence import PersistenceWriter, build_collection_store
from casetrack.services.prosecutor_service import (
    PostgresProsecutorProvider,
    StaticProsecutorProvider,
)
from casetrack.services.report_store import ReportStore
from casetrack.utils.dates import format_display_date

# Setup logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# Initialize Faker
fake = Faker()

PROSECUTOR_TITLES = ["Prosecutor", "Senior Prosecutor", "Chief Prosecutor", "Deputy Chief Prosecutor"]
DEPARTMENTS = ["Criminal Investigation", "Economic Crimes", "Drug Crimes", "Public Order", None]


def _display(offset_days: int) -> str:
    return format_display_date(date.today() + timedelta(days=offset_days))


class DummyDataGenerator:
    def __init__(self, user_key, owner_id, backends, db_connection=None):
        """Initialize the generator against the configured persistence chain."""
        self.user_key = user_key
        self.owner_id = owner_id
        self.db_connection = db_connection
        store = build_collection_store(backends, Config.STORAGE_DIR, db_connection)
        self.writer = PersistenceWriter(store, async_mode=False)
        self.cases = CaseStore.load(self.writer, user_key)
        self.reports = ReportStore.load(self.writer, user_key)

    def generate_prosecutors(self, count=8):
        """Generate prosecutor reference entries."""
        logger.info(f"Generating {count} prosecutors...")
        if self.db_connection is not None:
            provider = PostgresProsecutorProvider(self.db_connection)
        else:
            provider = StaticProsecutorProvider()

        prosecutors = []
        for _ in range(count):
            result = provider.add(
                self.owner_id,
                {
                    "name": fake.name(),
                    "title": random.choice(PROSECUTOR_TITLES),
                    "department": random.choice(DEPARTMENTS),
                },
            )
            if result.success:
                prosecutors.append(result.data)
            else:
                logger.warning(f"Could not store prosecutor: {result.error}")
        return prosecutors

    def _charges(self):
        return format_penal_code_display(random.choice(PENAL_CODE))

    def _defendants(self):
        defendants = []
        for _ in range(random.randint(1, 4)):
            detained = random.random() < 0.4
            defendants.append(
                {
                    "name": fake.name(),
                    "charges": self._charges(),
                    "preventive_measure": PreventiveMeasure.DETAINED if detained else PreventiveMeasure.AT_LARGE,
                    "detention_deadline": _display(random.randint(-5, 90)) if detained else None,
                }
            )
        return defendants

    def generate_cases(self, count, prosecutors):
        """Generate cases spread over every workflow stage."""
        logger.info(f"Generating {count} cases...")
        stage_paths = [
            [],
            [],
            [CaseStage.PROSECUTION],
            [CaseStage.PROSECUTION, CaseStage.TRIAL],
            [CaseStage.PROSECUTION, CaseStage.TRIAL, CaseStage.COMPLETED],
            [CaseStage.TEMPORARILY_SUSPENDED],
            [CaseStage.DISCONTINUED],
        ]
        for _ in range(count):
            defendants = self._defendants()
            case = self.cases.add(
                {
                    "name": f"{defendants[0]['name']} - {defendants[0]['charges']}",
                    "charges": defendants[0]["charges"],
                    "investigation_deadline": _display(random.randint(-10, 120)),
                    "prosecutor": random.choice(prosecutors).id if prosecutors else None,
                    "notes": fake.sentence() if random.random() < 0.5 else "",
                    "defendants": defendants,
                }
            )
            for stage in random.choice(stage_paths):
                self.cases.transfer_stage(case.id, stage)
        return self.cases.all()

    def generate_reports(self, count, prosecutors):
        """Generate reports, some of them overdue."""
        logger.info(f"Generating {count} reports...")
        outcomes = [None, None, ReportStage.NOT_PROSECUTED, ReportStage.TEMPORARILY_SUSPENDED, ReportStage.TRANSFERRED]
        for _ in range(count):
            received = random.randint(-60, 0)
            report = self.reports.add(
                {
                    "name": f"Report on {fake.catch_phrase().lower()}",
                    "charges": self._charges(),
                    "report_date": _display(received),
                    "resolution_deadline": _display(received + 60),
                    "prosecutor": random.choice(prosecutors).id if prosecutors else None,
                    "notes": fake.sentence() if random.random() < 0.3 else "",
                }
            )
            outcome = random.choice(outcomes)
            if outcome:
                self.reports.transfer_stage(report.id, outcome)
        return self.reports.all()

    def generate_statistics(self, prosecutors, cases, reports):
        """Display statistics about the generated data."""
        print("\n" + "=" * 60)
        print("DUMMY DATA GENERATION COMPLETE!")
        print("=" * 60)
        print("STATISTICS:")
        print(f"  - Prosecutors:      {len(prosecutors):,}")
        print(f"  - Cases:            {len(cases):,} ({len(self.cases.expiring_soon())} expiring soon)")
        print(f"  - Reports:          {len(reports):,} ({len(self.reports.expiring_soon())} overdue)")
        print("\nCASE STAGES:")
        stage_counts = {}
        for case in cases:
            stage_counts[case.stage] = stage_counts.get(case.stage, 0) + 1
        for stage, count in sorted(stage_counts.items()):
            print(f"  - {stage}: {count}")
        print("=" * 60)

    def run(self, case_count=40, report_count=30, prosecutors_file=None):
        """Run the complete dummy data generation process."""
        try:
            prosecutors = self.generate_prosecutors()
            if prosecutors_file:
                with open(prosecutors_file, "w", encoding="utf-8") as f:
                    # Seed entries carry no owner so the static provider shares them
                    seed = [dict(p.to_dict(), user_id=None) for p in prosecutors]
                    json.dump(seed, f, indent=2, ensure_ascii=False)
                logger.info(f"Prosecutor seed written to {prosecutors_file}")

            cases = self.generate_cases(case_count, prosecutors)
            reports = self.generate_reports(report_count, prosecutors)
            self.generate_statistics(prosecutors, cases, reports)
            return True
        except Exception as e:
            logger.error(f"Error during data generation: {e}")
            return False
        finally:
            self.writer.shutdown()
            if self.db_connection is not None:
                self.db_connection.close_all_connections()


def main():
    """Main function to handle command line arguments and run the generator."""
    parser = argparse.ArgumentParser(description="Generate dummy data for the Case & Report Tracker")
    parser.add_argument("--user", required=True, help="Workspace owner email")
    parser.add_argument("--owner-id", default=None, help="Account id owning the prosecutors (default: --user)")
    parser.add_argument("--cases", type=int, default=40, help="Number of cases to generate (default: 40)")
    parser.add_argument("--reports", type=int, default=30, help="Number of reports to generate (default: 30)")
    parser.add_argument(
        "--backends", default=",".join(Config.PERSISTENCE_BACKENDS), help="Ordered persistence backends"
    )
    parser.add_argument("--prosecutors-file", default=None, help="Write prosecutors to this seed file")

    args = parser.parse_args()
    backends = [name.strip() for name in args.backends.split(",") if name.strip()]

    db_connection = None
    if "postgres" in backends:
        db_connection = DatabaseConnection(**Config.get_database_config())
        if not db_connection.test_connection():
            logger.error("PostgreSQL backend requested but the database is unreachable")
            sys.exit(1)

    generator = DummyDataGenerator(
        user_key=args.user.strip().lower(),
        owner_id=args.owner_id or args.user.strip().lower(),
        backends=backends,
        db_connection=db_connection,
    )

    success = generator.run(case_count=args.cases, report_count=args.reports, prosecutors_file=args.prosecutors_file)

    if success:
        print("\n[SUCCESS] Successfully generated dummy data!")
        print("[INFO] You can now run: python run.py")
        sys.exit(0)
    else:
        print("\n[ERROR] Failed to generate dummy data. Check the logs above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
