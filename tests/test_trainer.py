import numpy as np
import pytest
import torch

from music_popularity_gru.config import TrainingConfig
from music_popularity_gru.exceptions import (
    EmptySplitError,
    ModelNotBuiltError,
    NoTestDataError,
    TrainingInProgressError,
)
from music_popularity_gru.training import (
    ModelStatus,
    ProgressEvent,
    SequenceClassifier,
    parameter_checksum,
)
from music_popularity_gru.training import trainer as trainer_module
from music_popularity_gru.training.engine import binary_accuracy


def scripted_val_losses(monkeypatch, losses):
    values = iter(losses)

    def fake_eval_loop(model, dataloader, loss_fn, device, show_progress=False):
        return next(values), 0.5

    monkeypatch.setattr(trainer_module, "eval_loop", fake_eval_loop)


@pytest.fixture
def classifier(model_config, training_config):
    return SequenceClassifier(model_config, training_config)


def fit(classifier, split, **kwargs):
    return classifier.fit(split.X_train, split.y_train, split.X_test, split.y_test, **kwargs)


def test_predict_before_build_fails(classifier, split):
    assert classifier.status is ModelStatus.UNBUILT
    with pytest.raises(ModelNotBuiltError):
        classifier.predict(split.X_test)
    with pytest.raises(ModelNotBuiltError):
        classifier.evaluate(split.X_test, split.y_test)
    assert classifier.summary() == "Model not built"


def test_built_model_predicts_without_training(classifier, split):
    classifier.build()
    assert classifier.status is ModelStatus.BUILT
    assert classifier.predict(split.X_test).shape == split.y_test.shape


@pytest.mark.parametrize("which", ["train", "val"])
def test_fit_rejects_empty_split(classifier, split, which):
    empty_x, empty_y = split.X_train[:0], split.y_train[:0]
    with pytest.raises(EmptySplitError):
        if which == "train":
            classifier.fit(empty_x, empty_y, split.X_test, split.y_test)
        else:
            classifier.fit(split.X_train, split.y_train, empty_x, empty_y)
    assert not classifier.is_training


def test_fit_records_history_and_emits_progress(classifier, split):
    events = []
    history = fit(classifier, split, max_epochs=3, progress_callback=events.append)

    assert classifier.status is ModelStatus.TRAINED
    assert len(history) == 3
    assert [e.epoch for e in events] == [1, 2, 3]
    assert all(isinstance(e, ProgressEvent) for e in events)
    assert events[-1].val_loss == history.val_loss[-1]
    assert all(0.0 <= acc <= 1.0 for acc in history.accuracy + history.val_accuracy)
    assert classifier.state.best_val_loss == min(history.val_loss)


def test_improving_validation_loss_runs_all_epochs(classifier, split, monkeypatch):
    classifier.config.patience = 2
    scripted_val_losses(monkeypatch, [1.0, 0.9, 0.8, 0.7, 0.6])
    fit(classifier, split, max_epochs=5)

    assert classifier.state.epochs_run == 5
    assert not classifier.state.stopped_early
    assert classifier.state.best_epoch == 5


def test_early_stopping_restores_best_parameters(classifier, split, monkeypatch):
    classifier.config.patience = 3
    scripted_val_losses(monkeypatch, [1.0, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0])
    checksums, counters = [], []

    def record(event):
        checksums.append(parameter_checksum(classifier.network))
        counters.append(event.early_stopping_counter)

    fit(classifier, split, max_epochs=7, progress_callback=record)

    state = classifier.state
    assert state.stopped_early
    assert state.epochs_run == 5
    assert state.best_epoch == 2
    assert counters == [0, 0, 1, 2, 3]
    assert state.best_checksum == checksums[1]
    assert parameter_checksum(classifier.network) == state.best_checksum
    assert checksums[-1] != state.best_checksum


def test_tied_validation_loss_is_not_an_improvement(classifier, split, monkeypatch):
    classifier.config.patience = 2
    scripted_val_losses(monkeypatch, [1.0, 1.0, 1.0, 1.0])
    fit(classifier, split, max_epochs=4)
    assert classifier.state.best_epoch == 1
    assert classifier.state.epochs_run == 3


def test_concurrent_training_is_rejected(classifier, split):
    outcomes = []

    def reenter(event):
        for call in (lambda: fit(classifier, split, max_epochs=1),
                     lambda: classifier.predict(split.X_test)):
            try:
                call()
                outcomes.append("accepted")
            except TrainingInProgressError:
                outcomes.append("rejected")

    fit(classifier, split, max_epochs=1, progress_callback=reenter)
    assert outcomes == ["rejected", "rejected"]
    assert not classifier.is_training
    classifier.predict(split.X_test)


def test_failing_callback_does_not_stop_training(classifier, split):
    def broken(event):
        raise RuntimeError("display unavailable")

    history = fit(classifier, split, max_epochs=2, progress_callback=broken)
    assert len(history) == 2


def test_stop_requested_ends_after_current_epoch(classifier, split):
    history = fit(classifier, split, max_epochs=5, stop_requested=lambda: True)
    assert len(history) == 1
    assert classifier.status is ModelStatus.TRAINED


def test_predict_is_deterministic(classifier, split):
    fit(classifier, split, max_epochs=1)
    first = classifier.predict(split.X_test)
    assert torch.equal(first, classifier.predict(split.X_test))
    assert first.shape == split.y_test.shape


def test_predict_with_uncertainty_averages_passes(classifier, split):
    fit(classifier, split, max_epochs=1)
    mean = classifier.predict_with_uncertainty(split.X_test, passes=5)
    assert mean.shape == split.y_test.shape
    assert torch.all((mean >= 0) & (mean <= 1))
    assert not classifier.network.training

    torch.manual_seed(3)
    single = classifier.predict_with_uncertainty(split.X_test, passes=1)
    torch.manual_seed(3)
    repeated = classifier.predict_with_uncertainty(split.X_test, passes=1)
    assert torch.equal(single, repeated)
    with pytest.raises(ValueError):
        classifier.predict_with_uncertainty(split.X_test, passes=0)


def test_evaluate_reports_pooled_loss_and_accuracy(classifier, split):
    fit(classifier, split, max_epochs=1)
    result = classifier.evaluate(split.X_test, split.y_test)
    predictions = classifier.predict(split.X_test)
    assert result.accuracy == pytest.approx(binary_accuracy(predictions, split.y_test))
    assert result.loss > 0
    with pytest.raises(NoTestDataError):
        classifier.evaluate(split.X_test[:0], split.y_test[:0])


def test_lr_scheduler_can_be_enabled(classifier, split):
    classifier.config.use_lr_scheduler = True
    classifier.build()
    assert classifier.scheduler is not None
    fit(classifier, split, max_epochs=2)
    assert len(classifier.history) == 2


def test_save_and_load(classifier, split, tmp_path, model_config, training_config):
    fit(classifier, split, max_epochs=1)
    path = classifier.save(str(tmp_path / "model.pth"))

    restored = SequenceClassifier(training_config=training_config)
    restored.load(path)
    assert restored.status is ModelStatus.TRAINED
    np.testing.assert_allclose(restored.predict(split.X_test).numpy(),
                               classifier.predict(split.X_test).numpy(), rtol=1e-6)


def test_summary_and_dispose(classifier, split):
    with classifier:
        classifier.build()
        summary = classifier.summary()
        assert summary.startswith("Model Architecture:")
        assert "gru_1 (VariationalGRU)" in summary
    assert classifier.status is ModelStatus.UNBUILT
    assert classifier.network is None


def test_build_leaves_global_rng_untouched(classifier):
    torch.manual_seed(11)
    expected = torch.rand(4)
    torch.manual_seed(11)
    classifier.build()
    assert torch.equal(torch.rand(4), expected)


def test_same_seed_builds_identical_weights(model_config, training_config):
    first = SequenceClassifier(model_config, training_config)
    second = SequenceClassifier(model_config, training_config)
    first.build()
    second.build()
    assert parameter_checksum(first.network) == parameter_checksum(second.network)


def test_unseeded_classifier_fits_and_evaluates(model_config, split):
    config = TrainingConfig(num_epochs=2, batch_size=8, device="cpu", seed=None)
    first = SequenceClassifier(model_config, config)
    history = fit(first, split)
    assert len(history) == 2
    assert 0.0 <= first.evaluate(split.X_test, split.y_test).accuracy <= 1.0

    second = SequenceClassifier(model_config, config)
    second.build()
    assert parameter_checksum(second.network) != parameter_checksum(first.network)
