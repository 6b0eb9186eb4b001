"""
Rewrite legacy status literals stored by older deployments.

    en_attente → PENDING, approuvé/validé → COMPLETED, rejeté → REJECTED
    (payments: en_attente → PENDING, PAID → COMPLETED)

The API already reads these values; this script makes the stored rows
canonical. Use --dry-run to only report counts.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select, update

from civil_registry.core.entities.status import LEGACY_PAYMENT_STATUSES, LEGACY_REQUEST_STATUSES
from civil_registry.infrastructure.db.database import get_db, init_db
from civil_registry.infrastructure.db.models import (
    BirthCertificate, BirthDeclaration, DocumentRequest, Payment,
)

TABLES = [
    (BirthDeclaration, LEGACY_REQUEST_STATUSES),
    (BirthCertificate, LEGACY_REQUEST_STATUSES),
    (DocumentRequest, LEGACY_REQUEST_STATUSES),
    (Payment, LEGACY_PAYMENT_STATUSES),
]


def migrate(db, dry_run: bool = False) -> dict[str, int]:
    counts = {}
    for model, legacy_map in TABLES:
        total = 0
        for legacy, status in legacy_map.items():
            if legacy == status.value:
                continue
            if dry_run:
                n = db.scalar(select(func.count()).select_from(model).where(model.status == legacy))
            else:
                n = db.execute(
                    update(model).where(model.status == legacy).values(status=status.value)
                ).rowcount
            total += n or 0
        counts[model.__tablename__] = total
    return counts


def main():
    parser = argparse.ArgumentParser(description="Normalise legacy status values")
    parser.add_argument("--dry-run", action="store_true", help="Report counts without writing")
    args = parser.parse_args()

    init_db()
    with get_db() as db:
        counts = migrate(db, dry_run=args.dry_run)
        if args.dry_run:
            db.rollback()

    verb = "would be rewritten" if args.dry_run else "rewritten"
    for table, n in counts.items():
        print(f"  {table:<22} {n:>6} row(s) {verb}")
    print(f"📊 Total: {sum(counts.values())}")


if __name__ == "__main__":
    main()
