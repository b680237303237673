from __future__ import annotations

from typing import Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from jobcard_api.workflow.errors import UnknownStepError


class Step(BaseModel):
    """One stage of the production pipeline."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Position of the step in the pipeline (1-based)")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="What happens at this step")
    is_qa_gate: bool = Field(False, description="True for the inspection step guarding the pipeline exit")


DEFAULT_STEPS: Tuple[Step, ...] = (
    Step(id=1, name="REQUESTED FROM INVENTORY", description="Material collection from warehouse"),
    Step(id=2, name="PAINTING", description="Base paint application"),
    Step(id=3, name="MACHINING", description="Precision machining and shaping"),
    Step(id=4, name="PVD POWDER COATING", description="Physical Vapor Deposition powder coating"),
    Step(id=5, name="PVD", description="Physical Vapor Deposition process"),
    Step(id=6, name="MILLING", description="Precision milling operations"),
    Step(id=7, name="ACRYLIC", description="Acrylic coating application"),
    Step(id=8, name="LACQUOR", description="Lacquer finishing"),
    Step(id=9, name="PACKAGING", description="Final packaging for shipment"),
    Step(id=10, name="QUALITY CHECK", description="Final quality inspection", is_qa_gate=True),
    Step(id=11, name="DISPATCHED TO SALES", description="Ready for customer delivery"),
)


class StepCatalog:
    """
    Ordered, read-only catalog of pipeline steps.

    Transition validation only relies on integer ordering, the QA gate id and
    the final step id; names and descriptions can change between catalog
    versions without touching the state machine.
    """

    def __init__(self, steps: Sequence[Step] = DEFAULT_STEPS, version: str = "v1") -> None:
        ordered = tuple(sorted(steps, key=lambda s: s.id))
        if not ordered:
            raise ValueError("Step catalog cannot be empty")
        expected = list(range(1, len(ordered) + 1))
        if [s.id for s in ordered] != expected:
            raise ValueError("Step ids must be contiguous starting at 1")
        gates = [s for s in ordered if s.is_qa_gate]
        if len(gates) != 1:
            raise ValueError("Step catalog must contain exactly one QA gate step")
        if gates[0].id >= ordered[-1].id:
            raise ValueError("QA gate must precede the final step")

        self._steps = ordered
        self._by_id = {s.id: s for s in ordered}
        self.version = version
        self.qa_gate_step = gates[0].id
        self.first_step = ordered[0].id
        self.final_step = ordered[-1].id

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._by_id

    # PUBLIC_INTERFACE
    def list_steps(self) -> List[Step]:
        """Return the steps in pipeline order. A fresh list on every call."""
        return list(self._steps)

    # PUBLIC_INTERFACE
    def get(self, step_id: int) -> Step:
        """Return the step or raise UnknownStepError."""
        step = self._by_id.get(step_id)
        if step is None:
            raise UnknownStepError(step_id, self.version)
        return step

    def require(self, step_id: int) -> int:
        self.get(step_id)
        return step_id

    def name_of(self, step_id: Optional[int]) -> Optional[str]:
        if step_id is None:
            return None
        return self.get(step_id).name


_default_catalog: StepCatalog | None = None


# PUBLIC_INTERFACE
def get_step_catalog() -> StepCatalog:
    """Return the process-wide default catalog."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = StepCatalog()
    return _default_catalog
