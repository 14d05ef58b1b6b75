import numpy as np
import pytest

from symbolnet.core.errors import DimensionMismatch, InvalidConfiguration, NumericalInstability
from symbolnet.core.layers import NeuronLayer
from symbolnet.core.types import Instance
from symbolnet.data import make_symbols
from symbolnet.training.backprop import BackpropagationEngine, TrainingState
from symbolnet.training.config import Hyperparameters


def _instance():
    return make_symbols(num_symbols=3, num_symbol_samples=5, samples_per_symbol=4, seed=0)


def _chain(widths, activation="sigmoid", output="sigmoid", seed=0):
    layers = [NeuronLayer(widths[0], 0)]
    for idx in range(1, len(widths)):
        function = output if idx == len(widths) - 1 else activation
        layers.append(NeuronLayer(widths[idx], widths[idx - 1], function, seed=seed + idx))
    return layers


def _one_epoch(layers, instance, **params):
    engine = BackpropagationEngine(layers)
    engine.callbacks.append(lambda epoch, metrics: engine.stop())
    params.setdefault("max_iteration", 100)
    return engine.train(instance, Hyperparameters(**params))


def _sigmoid(z):
    return 1.0 / (1.0 + np.exp(-z))


def _corpus_loss(params, inputs, targets):
    (w1, b1), (w2, b2) = params
    hidden = _sigmoid(inputs @ w1 + b1)
    outputs = _sigmoid(hidden @ w2 + b2)
    return 0.5 * np.sum((targets - outputs) ** 2)


class _History:
    def __init__(self):
        self.records = []

    def on_epoch(self, epoch, metrics):
        self.records.append((epoch, dict(metrics)))


@pytest.mark.parametrize(
    "policy, eta",
    [("Batch", 0.1), ("Online", 0.1), ("MiniBatch", 0.1)],
)
def test_every_policy_reduces_loss(policy, eta):
    history = _History()
    engine = BackpropagationEngine(_chain([10, 6, 3]), callbacks=[history])
    params = Hyperparameters(eta=eta, max_iteration=150, policy=policy, mini_batch_size=4)
    result = engine.train(_instance(), params)
    losses = [metrics["loss"] for _, metrics in history.records]
    assert result.epochs == 150
    assert result.state == TrainingState.ITERATION_LIMIT_REACHED.value
    assert len(losses) == 150
    assert losses[-1] < losses[0]
    assert np.isclose(result.loss, losses[-1])


def test_eval_every_adds_accuracy_and_class_metrics():
    history = _History()
    engine = BackpropagationEngine(_chain([10, 4, 3]), callbacks=[history])
    engine.train(_instance(), Hyperparameters(max_iteration=100, eval_every=25))
    evaluated = [epoch for epoch, metrics in history.records if "accuracy" in metrics]
    assert evaluated == [25, 50, 75, 100]
    last = history.records[-1][1]
    assert {"loss", "accuracy", "class_0", "class_1", "class_2"} <= set(last)


def test_batch_policy_sums_every_sample_before_updating():
    instance = _instance()
    trained = _chain([10, 4, 3], seed=3)
    manual = _chain([10, 4, 3], seed=3)
    engine = BackpropagationEngine(trained, callbacks=[lambda epoch, metrics: engine.stop()])
    result = engine.train(instance, Hyperparameters(eta=0.1, max_iteration=100, policy="Batch"))
    assert result.epochs == 1

    for x, t in zip(instance.inputs(), instance.targets()):
        h = x
        for layer in manual:
            h = layer.forward(h)
        delta = (t - h) * manual[-1].derivative()
        for idx in range(len(manual) - 1, 0, -1):
            manual[idx].accumulate(delta, 0.1)
            if idx > 1:
                delta = manual[idx].backward(delta) * manual[idx - 1].derivative()
    for layer in manual[1:]:
        layer.apply_gradients()

    for left, right in zip(trained[1:], manual[1:]):
        np.testing.assert_allclose(left.weights, right.weights)
        np.testing.assert_allclose(left.bias, right.bias)


def test_online_policy_updates_after_each_sample():
    instance = _instance()
    online = _chain([10, 4, 3], seed=5)
    batch = _chain([10, 4, 3], seed=5)
    _one_epoch(online, instance, eta=0.5, policy="Online")
    _one_epoch(batch, instance, eta=0.5, policy="Batch")
    assert not np.allclose(online[1].weights, batch[1].weights)


def test_batch_update_follows_negative_loss_gradient():
    instance = _instance()
    inputs = instance.inputs()
    targets = instance.targets().astype(np.float64)
    layers = _chain([10, 4, 3], seed=2)
    initial = [(layer.weights.copy(), layer.bias.copy()) for layer in layers[1:]]
    eta = 0.05
    _one_epoch(layers, instance, eta=eta, policy="Batch")

    eps = 1e-6
    for idx, layer in enumerate(layers[1:]):
        for position, name in enumerate(("weights", "bias")):
            base = initial[idx][position]
            gradient = np.zeros_like(base)
            for flat in range(base.size):
                plus = [[w.copy(), b.copy()] for w, b in initial]
                minus = [[w.copy(), b.copy()] for w, b in initial]
                plus[idx][position].flat[flat] += eps
                minus[idx][position].flat[flat] -= eps
                gradient.flat[flat] = (
                    _corpus_loss(plus, inputs, targets) - _corpus_loss(minus, inputs, targets)
                ) / (2 * eps)
            np.testing.assert_allclose(
                getattr(layer, name) - base, -eta * gradient, rtol=1e-5, atol=1e-8
            )


@pytest.mark.parametrize(
    "mini_batch_size, reference",
    [(12, "Batch"), (50, "Batch"), (1, "Online")],
)
def test_mini_batch_cadence_matches_reference_policy(mini_batch_size, reference):
    instance = _instance()
    assert len(instance) == 12
    mini = _chain([10, 4, 3], seed=4)
    expected = _chain([10, 4, 3], seed=4)
    _one_epoch(mini, instance, eta=0.3, policy="MiniBatch", mini_batch_size=mini_batch_size)
    _one_epoch(expected, instance, eta=0.3, policy=reference)
    for left, right in zip(mini[1:], expected[1:]):
        np.testing.assert_allclose(left.weights, right.weights)
        np.testing.assert_allclose(left.bias, right.bias)


def test_mini_batch_applies_after_each_slice():
    instance = _instance()
    mini = _chain([10, 4, 3], seed=4)
    batch = _chain([10, 4, 3], seed=4)
    online = _chain([10, 4, 3], seed=4)
    _one_epoch(mini, instance, eta=0.3, policy="MiniBatch", mini_batch_size=4)
    _one_epoch(batch, instance, eta=0.3, policy="Batch")
    _one_epoch(online, instance, eta=0.3, policy="Online")
    assert not np.allclose(mini[1].weights, batch[1].weights)
    assert not np.allclose(mini[1].weights, online[1].weights)


def test_empty_corpus_leaves_engine_idle():
    engine = BackpropagationEngine(_chain([10, 4, 3]))
    result = engine.train(
        Instance(num_symbol_samples=5, num_symbols=3), Hyperparameters(max_iteration=100)
    )
    assert result.epochs == 0
    assert result.state == "idle"
    assert engine.state is TrainingState.IDLE


def test_tolerance_reports_convergence():
    engine = BackpropagationEngine(_chain([10, 4, 3]))
    result = engine.train(_instance(), Hyperparameters(max_iteration=100, tolerance=10.0))
    assert result.state == "converged"
    assert result.epochs == 1
    assert engine.state is TrainingState.CONVERGED


def test_stop_request_is_honoured_at_epoch_boundary():
    seen = []

    def _callback(epoch, metrics):
        seen.append(epoch)
        if epoch == 3:
            engine.stop()

    engine = BackpropagationEngine(_chain([10, 4, 3]), callbacks=[_callback])
    result = engine.train(_instance(), Hyperparameters(max_iteration=100))
    assert result.state == "stopped"
    assert result.epochs == 3
    assert seen == [1, 2, 3]


def test_non_finite_outputs_raise():
    layers = _chain([10, 4, 3], activation="identity", output="identity")
    layers[1].weights = np.full_like(layers[1].weights, np.inf)
    engine = BackpropagationEngine(layers)
    with pytest.raises(NumericalInstability):
        engine.train(_instance(), Hyperparameters(max_iteration=100))
    assert engine.state is TrainingState.IDLE


def test_width_mismatch_is_rejected():
    engine = BackpropagationEngine(_chain([8, 4, 3]))
    with pytest.raises(DimensionMismatch):
        engine.train(_instance(), Hyperparameters(max_iteration=100))
    engine = BackpropagationEngine(_chain([10, 4, 2]))
    with pytest.raises(DimensionMismatch):
        engine.train(_instance(), Hyperparameters(max_iteration=100))


def test_engine_requires_input_and_hidden_layers():
    with pytest.raises(InvalidConfiguration):
        BackpropagationEngine(_chain([10, 3]))
    with pytest.raises(InvalidConfiguration):
        BackpropagationEngine(_chain([10, 4, 3])[1:] + [NeuronLayer(3, 3)])
