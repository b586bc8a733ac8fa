from __future__ import annotations

import json
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from .projection import export_path, project, to_json_value

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prospectminer.domain.model import Lead
    from prospectminer.domain.ports.output import ExportMetadata, FieldProjection, OutputWriter


log = getLogger(__name__)


@dataclass(slots=True)
class JsonLeadWriter:
    directory: Path = Path("output")
    indent: int = 2

    def write(
        self,
        leads: Sequence[Lead],
        *,
        projection: FieldProjection,
        metadata: ExportMetadata,
    ) -> Path:
        path = export_path(self.directory, metadata, "json")
        document = {
            "metadata": {
                "exported_at": metadata.exported_at.isoformat(),
                "run_id": metadata.run_id,
                "count": metadata.count,
                "min_score": metadata.min_score,
            },
            "leads": [
                {
                    column: to_json_value(value)
                    for column, value in project(lead, projection).items()
                }
                for lead in leads
            ],
        }
        path.write_text(json.dumps(document, indent=self.indent) + "\n", encoding="utf-8")
        log.info("Wrote JSON: %s (%s leads)", path, len(leads))
        return path


if TYPE_CHECKING:
    _writer_check: OutputWriter = JsonLeadWriter()
