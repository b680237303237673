import pytest

from jobcard_api.workflow.errors import UnknownStepError
from jobcard_api.workflow.steps import DEFAULT_STEPS, Step, StepCatalog, get_step_catalog


def test_default_catalog_is_the_eleven_step_pipeline():
    catalog = get_step_catalog()
    steps = catalog.list_steps()

    assert [s.id for s in steps] == list(range(1, 12))
    assert steps[0].name == "REQUESTED FROM INVENTORY"
    assert steps[-1].name == "DISPATCHED TO SALES"
    assert catalog.qa_gate_step == 10
    assert catalog.get(10).name == "QUALITY CHECK"
    assert catalog.first_step == 1
    assert catalog.final_step == 11
    assert catalog.version == "v1"


def test_list_steps_is_restartable_and_detached():
    catalog = StepCatalog()
    first = catalog.list_steps()
    first.clear()
    assert len(catalog.list_steps()) == 11
    assert [s.id for s in catalog] == [s.id for s in catalog]


def test_unknown_step_raises():
    catalog = StepCatalog()
    with pytest.raises(UnknownStepError) as info:
        catalog.get(12)
    assert info.value.kind == "UnknownStepError"
    assert info.value.details["step_id"] == 12
    assert 0 not in catalog
    assert 5 in catalog


def test_steps_are_immutable():
    step = DEFAULT_STEPS[0]
    with pytest.raises(Exception):
        step.name = "RENAMED"


def test_renamed_catalog_keeps_ordering_rules():
    renamed = [s.model_copy(update={"name": f"S{s.id}"}) for s in DEFAULT_STEPS]
    catalog = StepCatalog(renamed, version="v2")
    assert catalog.qa_gate_step == 10
    assert catalog.name_of(3) == "S3"
    assert catalog.version == "v2"


@pytest.mark.parametrize(
    "steps, message",
    [
        ([], "empty"),
        ([Step(id=1, name="A"), Step(id=3, name="C", is_qa_gate=True), Step(id=4, name="D")], "contiguous"),
        ([Step(id=1, name="A"), Step(id=2, name="B")], "exactly one QA gate"),
        ([Step(id=1, name="A"), Step(id=2, name="B", is_qa_gate=True)], "precede the final step"),
    ],
)
def test_catalog_validation(steps, message):
    with pytest.raises(ValueError, match=message):
        StepCatalog(steps)
