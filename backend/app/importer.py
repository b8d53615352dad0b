"""Catalog import – loads faculties, subjects and professors from a CSV file.

Each row names a faculty (with abbreviation), a subject taught there and the
professor who teaches it. Professors go through the same create-or-merge path
as the API, so re-running an import attaches subjects instead of duplicating.

    python -m app.importer [path/to/catalog.csv]
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from app.catalog import create_faculty, create_subject
from app.config import get_settings
from app.database import db_session, init_db
from app.kafka_producer import flush as kafka_flush
from app.models import Faculty, Subject
from app.naming import fold_name
from app.relationships import create_professor

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"faculty", "subject", "professor"}


def _clean(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _credits(value) -> Optional[int]:
    try:
        return int(float(value)) if not pd.isna(value) else None
    except (TypeError, ValueError):
        return None


def load_catalog(csv_path: str) -> pd.DataFrame:
    """Read the CSV and normalise column names; raises ``ValueError`` on missing columns."""
    df = pd.read_csv(csv_path)
    df.columns = [c.strip().lower() for c in df.columns]
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"CSV missing required columns: {sorted(missing)}")
    return df


def import_catalog(session: Session, df: pd.DataFrame) -> dict:
    stats = {"faculties": 0, "subjects": 0, "professors": 0, "merged": 0, "skipped": 0}
    faculty_cache: dict[str, Faculty] = {}

    for _, row in df.iterrows():
        faculty_name = _clean(row.get("faculty"))
        subject_name = _clean(row.get("subject"))
        professor_name = _clean(row.get("professor"))
        if not faculty_name or not subject_name:
            stats["skipped"] += 1
            continue

        # ── Faculty ──
        faculty = faculty_cache.get(faculty_name)
        if faculty is None:
            faculty = session.query(Faculty).filter_by(name=faculty_name).first()
            if faculty is None:
                abbreviation = _clean(row.get("abbreviation")) or faculty_name[:8].upper()
                faculty = create_faculty(session, faculty_name, abbreviation)
                stats["faculties"] += 1
            faculty_cache[faculty_name] = faculty

        # ── Subject ──
        subject = (
            session.query(Subject)
            .filter_by(faculty_id=faculty.id, normalized_name=fold_name(subject_name))
            .first()
        )
        if subject is None:
            subject = create_subject(session, faculty, subject_name, credits=_credits(row.get("credits")))
            stats["subjects"] += 1

        # ── Professor ──
        if not professor_name:
            continue
        _, created = create_professor(session, faculty, professor_name, [subject.id])
        stats["professors" if created else "merged"] += 1

    return stats


def run_import(csv_path: Optional[str] = None) -> Optional[dict]:
    """Import ``csv_path`` (default: the configured path) into the database."""
    csv_path = csv_path or get_settings().csv_path
    if not Path(csv_path).exists():
        logger.error("CSV file not found: %s", csv_path)
        return None

    logger.info("Starting catalog import from %s", csv_path)
    df = load_catalog(csv_path)
    init_db()

    with db_session() as session:
        stats = import_catalog(session, df)

    kafka_flush()
    logger.info(
        "Import complete – %d faculties, %d subjects, %d professors (%d merged, %d rows skipped)",
        stats["faculties"], stats["subjects"], stats["professors"], stats["merged"], stats["skipped"],
    )
    return stats


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    run_import(sys.argv[1] if len(sys.argv) > 1 else None)
