"""Scoring backends.

A backend is an already loaded model session shared by every prediction.
The pipeline only needs two things from it:

- ``feed(batch)``: a context manager that turns a batch of serialized
  examples into an input tensor and releases it on exit
- ``run(inputs)``: a context manager that runs the graph with ``inputs``
  bound to the input node, yields the output node's value and releases it
  on exit

Loading, sharing and closing the session belong to whoever builds the
backend, never to the prediction code.
"""
from __future__ import annotations

import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ContextManager, Dict, Iterator, Optional, Sequence, Tuple

import numpy as np
import tensorflow as tf

from floorprice.utils import get_logger, resolve_path

LOGGER = get_logger(__name__)

DEFAULT_INPUT_NODE = "input_example_tensor"
DEFAULT_OUTPUT_NODE = "Squeeze:0"
DEFAULT_TAGS = ("serve",)
SAVED_MODEL_FILES = ("saved_model.pb", "saved_model.pbtxt")


def tensor_name(node: str) -> str:
    """``"Squeeze"`` -> ``"Squeeze:0"``; names with an output index pass through."""
    return node if ":" in node else f"{node}:0"


class ScoringBackend(ABC):
    """Pre-loaded model session addressed by an input and an output node."""

    input_node: str
    output_node: str

    @abstractmethod
    def feed(self, batch: Sequence[bytes]) -> ContextManager[Any]:
        raise NotImplementedError

    @abstractmethod
    def run(self, inputs: Any) -> ContextManager[Any]:
        raise NotImplementedError


@dataclass
class BackendConfig:
    model_dir: Path
    tags: Tuple[str, ...] = DEFAULT_TAGS
    input_node: str = DEFAULT_INPUT_NODE
    output_node: str = DEFAULT_OUTPUT_NODE

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]], base_dir: Optional[str | Path] = None) -> "BackendConfig":
        section = section or {}
        model_dir = os.getenv("MODEL_DIR") or section.get("model_dir")
        if not model_dir:
            raise ValueError("backend.model_dir is not configured and MODEL_DIR is not set")
        return cls(
            model_dir=resolve_path(model_dir, base_dir),
            tags=tuple(section.get("tags", DEFAULT_TAGS)),
            input_node=section.get("input_node", DEFAULT_INPUT_NODE),
            output_node=section.get("output_node", DEFAULT_OUTPUT_NODE),
        )


class SavedModelBackend(ScoringBackend):
    """TensorFlow SavedModel exported with a serialized ``tf.train.Example`` input.

    The graph lives in its own ``tf.Graph`` and ``tf.compat.v1.Session``;
    ``Session.run`` is thread-safe so one instance serves concurrent callers.
    """

    def __init__(
        self,
        session: tf.compat.v1.Session,
        input_node: str,
        output_node: str,
        model_dir: Optional[str | Path] = None,
    ):
        self.session = session
        self.input_node = tensor_name(input_node)
        self.output_node = tensor_name(output_node)
        self.model_dir = Path(model_dir) if model_dir else None
        self._closed = False
        self._close_lock = threading.Lock()

    @classmethod
    def load(
        cls,
        model_dir: str | Path,
        tags: Sequence[str] = DEFAULT_TAGS,
        input_node: str = DEFAULT_INPUT_NODE,
        output_node: str = DEFAULT_OUTPUT_NODE,
    ) -> "SavedModelBackend":
        model_dir = Path(model_dir)
        if not model_dir.exists():
            raise FileNotFoundError(f"SavedModel directory {model_dir} not found")
        if not any((model_dir / name).exists() for name in SAVED_MODEL_FILES):
            raise FileNotFoundError(f"No saved_model.pb or saved_model.pbtxt in {model_dir}")
        graph = tf.Graph()
        session = tf.compat.v1.Session(graph=graph)
        try:
            tf.compat.v1.saved_model.load(session, list(tags), str(model_dir))
        except Exception:
            session.close()
            raise
        LOGGER.info("Loaded SavedModel from %s (tags=%s)", model_dir, list(tags))
        return cls(session, input_node, output_node, model_dir)

    @classmethod
    def from_config(cls, config: BackendConfig) -> "SavedModelBackend":
        return cls.load(config.model_dir, config.tags, config.input_node, config.output_node)

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def feed(self, batch: Sequence[bytes]) -> Iterator[np.ndarray]:
        """Python TensorFlow takes numpy input, so release only drops this call's reference."""
        inputs = np.array(list(batch), dtype=object)
        try:
            yield inputs
        finally:
            del inputs

    @contextmanager
    def run(self, inputs: np.ndarray) -> Iterator[np.ndarray]:
        """The fetched value is a numpy copy; release only drops this call's reference."""
        if self._closed:
            raise RuntimeError(f"Session for {self.model_dir} is closed")
        outputs = self.session.run(self.output_node, feed_dict={self.input_node: inputs})
        try:
            yield outputs
        finally:
            del outputs

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self.session.close()
            self._closed = True
        LOGGER.info("Closed SavedModel session for %s", self.model_dir)

    def __enter__(self) -> "SavedModelBackend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = [
    "BackendConfig",
    "DEFAULT_INPUT_NODE",
    "DEFAULT_OUTPUT_NODE",
    "DEFAULT_TAGS",
    "SavedModelBackend",
    "ScoringBackend",
    "tensor_name",
]
