import numpy as np
import pytest
import torch

from data_prep import write_image
from sr_model import PatchModel
from sr_patches import N_CHANNELS


class RecordingModel:
    """Stand-in for the torch model: replicates the center color and remembers inputs."""

    def __init__(self, scale_factor=2):
        self.scale_factor = scale_factor
        self.in_features = 9 * N_CHANNELS
        self.out_features = scale_factor * scale_factor * N_CHANNELS
        self.inputs = []

    def forward(self, patch):
        self.inputs.append(np.array(patch, copy=True))
        return np.tile(patch[:N_CHANNELS], self.scale_factor * self.scale_factor)


def make_identity_model(scale_factor=2):
    """PatchModel whose every output color equals the center input color."""
    model = PatchModel(scale_factor)
    with torch.no_grad():
        weight = model.network.linear.weight
        weight.zero_()
        model.network.linear.bias.zero_()
        for k in range(scale_factor * scale_factor):
            for c in range(N_CHANNELS):
                weight[k * N_CHANNELS + c, c] = 1.0
    return model


def gradient_image(width, height, seed=0):
    rng = np.random.default_rng(seed)
    xs = np.linspace(0.0, 1.0, width, dtype=np.float32)
    ys = np.linspace(0.0, 1.0, height, dtype=np.float32)
    img = np.stack([
        np.tile(xs, (height, 1)),
        np.tile(ys[:, None], (1, width)),
        rng.random((height, width), dtype=np.float32),
    ], axis=2)
    return img.astype(np.float32)


@pytest.fixture
def recording_model():
    return RecordingModel()


@pytest.fixture
def identity_model():
    return make_identity_model()


@pytest.fixture
def seeded_model():
    return PatchModel.random_init(2, seed=1234)


@pytest.fixture
def make_corpus(tmp_path):
    """Write small PNGs (and optionally garbage) into tmp_path/corpus."""
    root = tmp_path / "corpus"
    root.mkdir()

    def _make(names, corrupt=(), size=(6, 5)):
        for i, name in enumerate(names):
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if name in corrupt:
                path.write_bytes(b"this is not a png at all")
            else:
                write_image(path, gradient_image(*size, seed=i))
        return root

    return _make
