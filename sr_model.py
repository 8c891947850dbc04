# sr_model.py

import os
import pickle
import tempfile
from typing import Protocol

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim

from sr_patches import N_CHANNELS, check_width, input_width, output_width


class CheckpointError(Exception):
    """A stored model state cannot be used with the current patch geometry."""


class ModelPort(Protocol):
    """What the training driver and the upscaler need from a trainable mapping."""

    scale_factor: int
    in_features: int
    out_features: int

    def forward(self, patch: np.ndarray) -> np.ndarray: ...

    def train_step(self, patch: np.ndarray, target: np.ndarray) -> float: ...

    def save(self, path, **progress) -> None: ...

    def load(self, path) -> dict: ...


class PatchMapper(nn.Module):
    """
    Maps one flattened input neighbourhood to one flattened output block.
    A single linear layer: 9 colors in, scale*scale colors out.
    """
    def __init__(self, in_features, out_features):
        super(PatchMapper, self).__init__()
        self.linear = nn.Linear(in_features, out_features)

    def forward(self, x):
        return self.linear(x)


class PatchModel:
    """PyTorch implementation of ModelPort: the network plus its SGD optimizer."""

    def __init__(self, scale_factor=2, lr=1e-2, momentum=0.9):
        self.scale_factor = scale_factor
        self.in_features = input_width()
        self.out_features = output_width(scale_factor)
        self.network = PatchMapper(self.in_features, self.out_features)
        self.criterion = nn.MSELoss()
        self.optimizer = optim.SGD(self.network.parameters(), lr=lr, momentum=momentum)

    @classmethod
    def random_init(cls, scale_factor=2, lr=1e-2, momentum=0.9, seed=None):
        if seed is not None:
            torch.manual_seed(seed)
        model = cls(scale_factor, lr=lr, momentum=momentum)
        return model

    def _to_tensor(self, vector, width):
        vector = check_width(np.asarray(vector, dtype=np.float32), width)
        return torch.from_numpy(vector)

    @torch.no_grad()
    def forward(self, patch):
        x = self._to_tensor(patch, self.in_features)
        self.network.eval()
        return self.network(x).numpy()

    def train_step(self, patch, target):
        x = self._to_tensor(patch, self.in_features)
        y_true = self._to_tensor(target, self.out_features)

        self.network.train()
        self.optimizer.zero_grad()
        y = self.network(x)
        loss = self.criterion(y, y_true)
        loss.backward()
        self.optimizer.step()
        return loss.item()

    def state(self):
        return {
            "state_dict": self.network.state_dict(),
            "optimizer": self.optimizer.state_dict(),
            "in_features": self.in_features,
            "out_features": self.out_features,
            "scale_factor": self.scale_factor,
        }

    def load_state(self, state):
        """Fill this model from a checkpoint payload; geometry must match exactly."""
        try:
            shape = (state["in_features"], state["out_features"], state["scale_factor"])
        except (KeyError, TypeError) as exc:
            raise CheckpointError(f"checkpoint is missing geometry fields: {exc}") from exc
        expected = (self.in_features, self.out_features, self.scale_factor)
        if shape != expected:
            raise CheckpointError(
                f"checkpoint geometry (in, out, scale)={shape} does not match {expected}"
            )
        try:
            self.network.load_state_dict(state["state_dict"], strict=True)
            self.optimizer.load_state_dict(state["optimizer"])
        except (KeyError, RuntimeError, ValueError) as exc:
            raise CheckpointError(f"checkpoint weights do not fit the network: {exc}") from exc

    def save(self, path, **progress):
        """
        Write the model, optimizer and any progress fields to `path`.
        The payload goes to a temporary file first and is renamed into place.
        """
        payload = self.state()
        payload.update(progress)
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                torch.save(payload, f)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def load(self, path):
        """Restore from `path` and return the full payload (progress fields included)."""
        try:
            payload = torch.load(path, map_location="cpu")
        except (OSError, RuntimeError, ValueError, EOFError, pickle.UnpicklingError) as exc:
            raise CheckpointError(f"cannot read checkpoint {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise CheckpointError(f"{path} does not hold a checkpoint dict")
        self.load_state(payload)
        return payload

    def __repr__(self):
        return (f"PatchModel(scale={self.scale_factor}, "
                f"{self.in_features}->{self.out_features}, colors={N_CHANNELS})")
