"""Seed the forms collection with sample insurance forms (metadata only, no files).

Each form is created through FirestoreFormRepository, so keywords, audit
fields and timestamps are filled exactly as for API uploads. Failures are
reported per form and do not stop the run.

Usage:
    uv run python -m scripts.seed_sample_forms [user_id]

Default user_id: system.
Requires: FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH in env or .env.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

from app.application.dtos.form import FormCreate
from app.domain.enums import FormCategory, LineOfBusiness
from app.domain.exceptions import FormsException

SAMPLE_FORMS: tuple[FormCreate, ...] = (
    FormCreate(
        title="Commercial General Liability Application",
        description=(
            "Standard application form for commercial general liability insurance coverage. "
            "This form collects essential information about business operations, prior claims "
            "history, and risk exposures."
        ),
        form_number="CGL-001-CA",
        category=FormCategory.APPLICATION,
        line_of_business=LineOfBusiness.GENERAL_LIABILITY,
        state_applicability=("CA", "NV", "AZ"),
        edition_date=date(2024, 1, 15),
        effective_date=date(2024, 2, 1),
        tags=("liability", "commercial", "application", "general liability"),
        version="2024.1",
    ),
    FormCreate(
        title="Workers Compensation Policy Form",
        description=(
            "Standard policy form for workers compensation coverage including employee "
            "classifications and premium calculations."
        ),
        form_number="WC-POL-002-TX",
        category=FormCategory.POLICY,
        line_of_business=LineOfBusiness.WORKERS_COMPENSATION,
        state_applicability=("TX", "OK", "LA"),
        edition_date=date(2024, 1, 10),
        effective_date=date(2024, 1, 15),
        tags=("workers comp", "policy", "texas", "employees"),
        version="2024.1",
    ),
    FormCreate(
        title="Auto Liability Endorsement - Excluded Driver",
        description=(
            "Endorsement to exclude specific drivers from auto liability coverage due to poor "
            "driving records or other risk factors."
        ),
        form_number="AUTO-END-003-NY",
        category=FormCategory.ENDORSEMENT,
        line_of_business=LineOfBusiness.AUTO,
        state_applicability=("NY", "NJ", "CT"),
        edition_date=date(2024, 1, 8),
        effective_date=date(2024, 1, 20),
        expiration_date=date(2025, 1, 20),
        is_active=False,
        tags=("auto", "endorsement", "excluded driver", "liability"),
        version="2023.3",
    ),
    FormCreate(
        title="Property Insurance Certificate",
        description=(
            "Certificate of insurance for commercial property coverage including building "
            "and contents protection."
        ),
        form_number="PROP-CERT-004-FL",
        category=FormCategory.CERTIFICATE,
        line_of_business=LineOfBusiness.PROPERTY,
        state_applicability=("FL", "GA", "SC"),
        edition_date=date(2024, 1, 20),
        effective_date=date(2024, 2, 1),
        tags=("property", "certificate", "commercial", "building"),
        version="2024.1",
    ),
    FormCreate(
        title="Cyber Liability Application",
        description=(
            "Application form for cyber liability insurance covering data breaches, network "
            "security, and privacy violations."
        ),
        form_number="CYBER-APP-005-CA",
        category=FormCategory.APPLICATION,
        line_of_business=LineOfBusiness.CYBER,
        state_applicability=("CA", "WA", "OR"),
        edition_date=date(2024, 1, 25),
        effective_date=date(2024, 2, 15),
        tags=("cyber", "liability", "data breach", "technology"),
        version="2024.1",
    ),
)


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _load_env() -> None:
    """Load .env from project root so get_settings() sees FIREBASE_* when run as script."""
    load_dotenv(_project_root() / ".env", override=True)


async def run(user_id: str) -> int:
    """Create every sample form; return the number that failed."""
    from app.infrastructure.firebase import close_firebase, init_firebase
    from app.infrastructure.firebase.repositories import FirestoreFormRepository

    client = init_firebase()
    if client is None:
        print("Firestore is not configured (set FIREBASE_SERVICE_ACCOUNT_*)", file=sys.stderr)
        return len(SAMPLE_FORMS)

    repository = FirestoreFormRepository(client)
    failed = 0
    try:
        for form in SAMPLE_FORMS:
            try:
                form_id = await repository.create_form(form, user_id)
                print(f"Created form: {form.title} (ID: {form_id})")
            except FormsException as e:
                failed += 1
                print(f"Failed to create form: {form.title}: {e.message}", file=sys.stderr)
    finally:
        await repository.tasks.drain(timeout=5.0)
        await close_firebase()
    print("Sample data seeding completed.")
    return failed


def main() -> None:
    _load_env()
    user_id = sys.argv[1] if len(sys.argv) > 1 else "system"
    failed = asyncio.run(run(user_id))
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
