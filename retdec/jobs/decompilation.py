from __future__ import annotations

from dataclasses import dataclass

from retdec.core.files import File
from retdec.jobs.base import Job
from retdec.schemas.status import DecompilationPhase


@dataclass(slots=True)
class DecompilationArguments:
    input_file: File | None = None
    pdb_file: File | None = None
    target_language: str | None = None
    architecture: str | None = None
    file_format: str | None = None


class Decompilation(Job):
    """Handle of one decompilation started by ``Decompiler.start_decompilation``."""

    resource_path = "decompiler/decompilations"

    @property
    def completion(self) -> int:
        """Completion percentage reported by the latest poll (0 before any poll)."""
        if self.status is None or self.status.completion is None:
            return 0
        return self.status.completion

    @property
    def phases(self) -> list[DecompilationPhase]:
        if self.status is None:
            return []
        return list(self.status.phases)

    def get_output_hll_code(self) -> str:
        return self._get_output("hll").body_as_text()

    def get_output_dsm_code(self) -> str:
        return self._get_output("dsm").body_as_text()
