import os

import pytest

from predictor_network import DrynessPredictorNetwork
from smart_controller import DEFAULT_CONTROLLER_PARAMS
from utils import (
    list_trainings,
    load_model,
    load_params,
    plot_comparison,
    plot_fitness_history,
    save_model,
    save_params,
)


def test_save_and_load_params(tmp_path):
    params = DEFAULT_CONTROLLER_PARAMS._replace(dryness_weight=2.25)
    training_id = save_params("dry summer", params, 71.5, config={"generations": 3}, root=str(tmp_path))

    loaded, document = load_params(training_id, root=str(tmp_path))
    assert loaded == params
    assert document["name"] == "dry summer"
    assert document["fitness"] == pytest.approx(71.5)
    assert document["config"] == {"generations": 3}
    assert document["id"] == training_id


def test_load_missing_training_returns_none(tmp_path):
    assert load_params("does-not-exist", root=str(tmp_path)) is None


def test_list_trainings(tmp_path):
    assert list_trainings(root=str(tmp_path)) == []
    first = save_params("a", DEFAULT_CONTROLLER_PARAMS, 10.0, root=str(tmp_path))
    second = save_params("b", DEFAULT_CONTROLLER_PARAMS, 20.0, root=str(tmp_path))
    documents = list_trainings(root=str(tmp_path))
    assert {d["id"] for d in documents} == {first, second}
    assert documents[0]["timestamp"] >= documents[1]["timestamp"]


def test_model_weights_round_trip(tmp_path):
    model = DrynessPredictorNetwork()
    path = save_model(model, "predictor", root=str(tmp_path))
    assert os.path.exists(path)

    restored = load_model(DrynessPredictorNetwork(), "predictor", root=str(tmp_path))
    for a, b in zip(model.state_dict().values(), restored.state_dict().values()):
        assert (a == b).all()


def test_plots_are_written(tmp_path):
    history_path = plot_fitness_history([40, 55, 61], "ga", avg_history=[30, 41, 50], root=str(tmp_path))
    assert os.path.exists(history_path)

    comparison_path = plot_comparison(["always_on", "smart"], [50, 70], [3, 2], [60, 80], [12.0, 5.5],
                                      root=str(tmp_path))
    assert os.path.exists(comparison_path)
