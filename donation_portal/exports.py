"""CSV exports of the contribution ledger and land donor list."""

import csv
import io
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .models import Contribution, LandDonor
from .utils.formatting import format_date

CONTRIBUTION_HEADERS = [
    "Receipt Number",
    "Contributor",
    "Type",
    "Amount",
    "Date",
    "Purpose",
    "Status",
]

LAND_DONOR_HEADERS = [
    "Name",
    "Land Amount",
    "Unit",
    "Location",
    "Date",
    "Verified",
    "Quote",
    "Notes",
]


def _number(value: float) -> str:
    """Exact number without grouping, integral values without a fraction."""
    return format(Decimal(str(value)).normalize(), "f")


def export_contributions_csv(contributions: Iterable[Contribution]) -> str:
    """Contributions as CSV with every cell quoted; anonymous donors stay anonymous."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CONTRIBUTION_HEADERS)
    for contribution in contributions:
        writer.writerow(
            [
                contribution.receipt_number,
                contribution.display_name,
                contribution.type.value,
                _number(contribution.amount),
                format_date(contribution.date),
                contribution.purpose or "",
                contribution.status.value,
            ]
        )
    return buffer.getvalue()


def export_land_donors_csv(donors: Iterable[LandDonor]) -> str:
    """Land donors as CSV; text cells are quoted when needed."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(LAND_DONOR_HEADERS)
    for donor in donors:
        writer.writerow(
            [
                donor.name,
                _number(donor.land_amount),
                donor.unit,
                donor.location or "",
                format_date(donor.date),
                "Yes" if donor.verified else "No",
                donor.quote or "",
                donor.notes or "",
            ]
        )
    return buffer.getvalue()


def export_filename(prefix: str, day: Optional[date] = None) -> str:
    """Download name for an export, e.g. contributions-2026-10-18.csv."""
    day = day or date.today()
    return f"{prefix}-{day.isoformat()}.csv"
