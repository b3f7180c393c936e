from datetime import timezone

import pytest
from pydantic import ValidationError

from alchemist.schemas.models import (
    AlchemistConfig,
    Client,
    ValidationConfig,
    ValidationFinding,
    Worker,
)
from alchemist.schemas.rules import PrioritizationWeights


def test_entity_accepts_camel_case_and_snake_case():
    a = Client.model_validate({"id": "C1", "name": "Acme", "requestedTaskIds": ["T1"]})
    b = Client(id="C1", name="Acme", requested_task_ids=["T1"])

    assert a == b
    assert a.model_dump(by_alias=True)["requestedTaskIds"] == ["T1"]


def test_entity_ignores_unknown_columns():
    w = Worker.model_validate({"id": "W1", "name": "Ann", "shoeSize": 42})

    assert not hasattr(w, "shoeSize")
    assert w.available_slots == []


def test_finding_create_builds_unique_ids_and_utc_timestamp():
    f1 = ValidationFinding.create("task", "T1", "duration", "Duration must be at least 1", "error")
    f2 = ValidationFinding.create("task", "T1", "duration", "Duration must be at least 1", "error")

    assert f1.id.startswith("task-T1-duration-")
    assert f1.id != f2.id
    assert f1.key() == f2.key()
    assert f1.timestamp.tzinfo == timezone.utc


def test_finding_is_frozen():
    f = ValidationFinding.create("client", "C1", "priority", "msg", "warning")

    with pytest.raises(ValidationError):
        f.message = "changed"  # type: ignore[misc]


def test_finding_rejects_unknown_severity():
    with pytest.raises(ValidationError):
        ValidationFinding.create("client", "C1", "priority", "msg", "fatal")  # type: ignore[arg-type]


def test_config_defaults_and_forbidden_extras():
    cfg = AlchemistConfig()
    assert cfg.validation == ValidationConfig()
    assert cfg.validation.overload_threshold == 10
    assert cfg.export.formats == ["csv"]
    assert cfg.output_dir == "data/output"

    with pytest.raises(ValidationError):
        ValidationConfig(priority_floor=1)


def test_prioritization_weights_normalized():
    weights = PrioritizationWeights()

    shares = weights.normalized()

    assert sum(shares.values()) == pytest.approx(1.0)
    assert shares["priorityLevel"] == pytest.approx(0.3)
    assert PrioritizationWeights(
        priority_level=0, fulfillment=0, fairness=0, efficiency=0, skill_match=0
    ).normalized() == dict.fromkeys(shares, 0.0)
