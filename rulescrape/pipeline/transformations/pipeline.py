"""Ordered transformation pipelines bound to a registry."""

from typing import Any, Sequence

from rulescrape.models.value import Value, to_value
from rulescrape.pipeline.document import NodeValue

from .registry import BoundTransformation, TransformationError


class TransformationPipeline:
    """A fixed sequence of bound transformations applied left to right."""

    def __init__(self, steps: Sequence[BoundTransformation] = ()):
        self.steps = tuple(steps)

    def __len__(self) -> int:
        return len(self.steps)

    def apply(self, seed: Any) -> Value:
        """Run every step over the seed and normalize the result into a Value.

        A seed element that reaches the end of the pipeline untouched
        becomes its trimmed text content.

        Raises:
            TransformationError: If a step fails or yields an unsupported value
        """
        value = seed
        for step in self.steps:
            try:
                value = step(value)
            except TransformationError:
                raise
            except Exception as e:
                raise TransformationError(f"{step.name} failed: {e}") from e

        if isinstance(value, NodeValue):
            value = value.text_content().strip()
        try:
            return to_value(value)
        except TypeError as e:
            raise TransformationError(str(e)) from e
