from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from retdec.core.files import File
from retdec.jobs.base import Job


@dataclass(slots=True)
class AnalysisArguments:
    input_file: File | None = None
    output_format: str | None = None
    verbose: bool | None = None


class Analysis(Job):
    resource_path = "fileinfo/analyses"

    def get_output(self) -> str:
        return self._get_output("output").body_as_text()

    def get_output_json(self) -> Any:
        """Parsed report of an analysis started with ``output_format="json"``."""
        return self._get_output("output").body_as_json()
