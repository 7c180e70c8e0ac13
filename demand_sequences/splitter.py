import math
from pathlib import Path
from typing import Optional

from demand_sequences.config import PATH_CONFIG, PIPELINE_CONFIG
from demand_sequences.encoder import GlobalMinMaxScaler
from demand_sequences.errors import ConfigError, NoSequencesError
from demand_sequences.logger import setup_logger
from demand_sequences.models import Sequence, Split, TestData, TrainData

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


def train_size_for(total_samples: int, train_ratio: float) -> int:
    return math.floor(total_samples * train_ratio)


def split_sequences(sequence: Optional[Sequence], train_ratio: float = PIPELINE_CONFIG["train_ratio"]) -> Split:
    """
    Split sequences by leading index and scale both parts with train-only bounds.

    Samples [0, train_size) train, the rest test; order is preserved. One
    scaler is fitted on the train features and one on the train targets,
    then applied unchanged to the test part.

    Raises:
        NoSequencesError: sequence missing/empty, or the ratio leaves no train samples.
    """
    if sequence is None or len(sequence) == 0:
        raise NoSequencesError("No sequences created; build sequences before splitting")
    if not 0 < train_ratio < 1:
        raise ConfigError(f"train_ratio must be strictly between 0 and 1, got {train_ratio}")

    total_samples = len(sequence)
    train_size = train_size_for(total_samples, train_ratio)
    if train_size == 0:
        raise NoSequencesError(
            f"train_ratio={train_ratio} leaves no training samples out of {total_samples}"
        )

    logger.info(f"Splitting data: {train_size} training, {total_samples - train_size} test samples")

    X_train = sequence.features[:train_size]
    y_train = sequence.targets[:train_size]
    X_test = sequence.features[train_size:]
    y_test = sequence.targets[train_size:]
    test_labels = sequence.labels[train_size:]

    feature_scaler = GlobalMinMaxScaler().fit(X_train)
    target_scaler = GlobalMinMaxScaler().fit(y_train)

    train = TrainData(
        features=feature_scaler.normalize(X_train),
        targets=target_scaler.normalize(y_train),
    )
    test = TestData(
        features=feature_scaler.normalize(X_test),
        targets=target_scaler.normalize(y_test),
        labels=test_labels,
        original_targets=y_test,
    )

    return Split(train=train, test=test, feature_scaler=feature_scaler, target_scaler=target_scaler)
