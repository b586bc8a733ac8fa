from __future__ import annotations

import pytest

from prospectminer.domain.fields import (
    UnknownFieldError,
    field_value,
    normalize_path,
    resolve_field,
)
from prospectminer.domain.model import EnrichmentData
from prospectminer.domain.ports.output import FieldProjection
from tests.helpers.leads import make_lead


def test_normalize_path_accepts_camel_case() -> None:
    assert normalize_path("sourceMetadata.reviewCount") == "source_metadata.review_count"
    assert normalize_path("lead_id") == "lead_id"


def test_field_value_reads_nested_attributes() -> None:
    lead = make_lead()

    assert field_value(lead, "city") == "Austin"
    assert field_value(lead, "source_metadata.tags") == ["plumber"]
    assert field_value(lead, "enrichment_data.emails") is None


def test_mapping_fields_can_be_indexed() -> None:
    lead = make_lead()
    lead.enrichment_data = EnrichmentData(social_links={"facebook": "https://fb.example/pro"})

    assert field_value(lead, "enrichmentData.socialLinks.facebook") == "https://fb.example/pro"
    assert field_value(lead, "enrichment_data.social_links.instagram") is None


@pytest.mark.parametrize("path", ["nope", "source_metadata.nope", "city.length", ""])
def test_unknown_paths_fail_loudly(path: str) -> None:
    with pytest.raises(UnknownFieldError):
        resolve_field(path)


def test_projection_columns_follow_angle_and_reason_toggles() -> None:
    fields = ("leadId", "business_name", "active_angles", "lead_id")

    assert FieldProjection(fields).columns == (
        "lead_id",
        "business_name",
        "active_angles",
        "score_reasons",
    )
    assert FieldProjection(fields, include_angles=False, include_reasons=False).columns == (
        "lead_id",
        "business_name",
    )
