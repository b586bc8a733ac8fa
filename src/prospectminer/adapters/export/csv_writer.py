from __future__ import annotations

import csv
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from .projection import export_path, project, to_cell

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prospectminer.domain.model import Lead
    from prospectminer.domain.ports.output import ExportMetadata, FieldProjection, OutputWriter

log = getLogger(__name__)


@dataclass(slots=True)
class CsvLeadWriter:
    directory: Path = Path("output")

    def write(
        self,
        leads: Sequence[Lead],
        *,
        projection: FieldProjection,
        metadata: ExportMetadata,
    ) -> Path:
        path = export_path(self.directory, metadata, "csv")
        columns = projection.columns
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(columns)
            for lead in leads:
                row = project(lead, projection)
                writer.writerow([to_cell(row[column]) for column in columns])
        log.info("Wrote CSV: %s (%s rows)", path, len(leads))
        return path


if TYPE_CHECKING:
    _writer_check: OutputWriter = CsvLeadWriter()
