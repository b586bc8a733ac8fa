from __future__ import annotations

import csv
import json
from typing import TYPE_CHECKING

from prospectminer.adapters.export import CsvLeadWriter, JsonLeadWriter, to_cell
from prospectminer.domain.model import AngleType, EnrichmentData, LeadStatus
from prospectminer.domain.ports.output import ExportMetadata, FieldProjection
from tests.helpers.leads import BASE_TIME, make_lead

if TYPE_CHECKING:
    from pathlib import Path

    from prospectminer.domain.model import Lead


def _exported_lead() -> Lead:
    lead = make_lead(status=LeadStatus.SCORED, email="Owner@ProPlumbing.example")
    lead.score = 75
    lead.score_reasons = ["has_phone", "has_website"]
    lead.active_angles = [AngleType.NO_ONLINE_BOOKING, AngleType.FOUNDER_LED]
    lead.enrichment_data = EnrichmentData(social_links={"facebook": "https://fb.example/pro"})
    return lead


METADATA = ExportMetadata(exported_at=BASE_TIME, run_id="run_test_1", count=1, min_score=20)


def test_csv_writer_flattens_lists_and_names_file_by_date(tmp_path: Path) -> None:
    projection = FieldProjection(
        fields=("lead_id", "business_name", "email", "score", "enrichmentData.socialLinks")
    )

    path = CsvLeadWriter(tmp_path / "exports").write(
        [_exported_lead()], projection=projection, metadata=METADATA
    )

    assert path.name == "leads_2025-03-01_1.csv"
    with path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert list(rows[0]) == [
        "lead_id",
        "business_name",
        "email",
        "score",
        "enrichment_data.social_links",
        "active_angles",
        "score_reasons",
    ]
    assert rows[0]["business_name"] == "Pro Plumbing LLC"
    assert rows[0]["score"] == "75"
    assert rows[0]["active_angles"] == "no_online_booking;founder_led"
    assert rows[0]["score_reasons"] == "has_phone;has_website"
    assert rows[0]["enrichment_data.social_links"] == "facebook=https://fb.example/pro"


def test_json_writer_carries_metadata_and_drops_excluded_columns(tmp_path: Path) -> None:
    projection = FieldProjection(
        fields=("business_name", "score", "score_reasons"),
        include_reasons=False,
    )

    path = JsonLeadWriter(tmp_path).write(
        [_exported_lead()], projection=projection, metadata=METADATA
    )

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["metadata"] == {
        "exported_at": "2025-03-01T12:00:00+00:00",
        "run_id": "run_test_1",
        "count": 1,
        "min_score": 20,
    }
    assert document["leads"] == [
        {
            "business_name": "Pro Plumbing LLC",
            "score": 75,
            "active_angles": ["no_online_booking", "founder_led"],
        }
    ]


def test_to_cell_renders_missing_and_boolean_values() -> None:
    assert to_cell(None) == ""
    assert to_cell(True) == "true"  # noqa: FBT003
    assert to_cell(LeadStatus.OUTPUT) == "output"
    assert to_cell(BASE_TIME) == "2025-03-01T12:00:00+00:00"
