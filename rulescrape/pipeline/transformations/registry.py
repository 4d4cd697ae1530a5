"""Registry of named transformations."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

TransformationFunc = Callable[[Any, Mapping[str, Any]], Any]
ParamsValidator = Callable[[Mapping[str, Any]], None]

LEGACY_SUFFIX = "Transformation"


class TransformationError(Exception):
    """Raised when a transformation cannot be applied to a value."""

    pass


class UnknownTransformationError(LookupError):
    """Raised when a rule references a transformation that is not registered."""

    pass


def normalize_name(name: str) -> str:
    """Strip the legacy 'Transformation' suffix (CastToIntegerTransformation -> CastToInteger)."""
    name = name.strip()
    if name.endswith(LEGACY_SUFFIX) and len(name) > len(LEGACY_SUFFIX):
        return name[: -len(LEGACY_SUFFIX)]
    return name


@dataclass(frozen=True)
class RegisteredTransformation:
    """A named transformation function with optional parameter validation."""

    name: str
    func: TransformationFunc
    description: str = ""
    validate: Optional[ParamsValidator] = None


@dataclass(frozen=True)
class BoundTransformation:
    """A transformation resolved against the registry with its parameters."""

    name: str
    func: TransformationFunc
    params: Mapping[str, Any] = field(default_factory=dict)

    def __call__(self, value: Any) -> Any:
        return self.func(value, self.params)


class TransformationRegistry:
    """Maps transformation names to functions.

    Registration is expected to happen during setup; lookups after that are
    plain dictionary reads and safe to share between threads.
    """

    def __init__(self, transformations: Optional[dict[str, RegisteredTransformation]] = None):
        self._transformations: dict[str, RegisteredTransformation] = dict(transformations or {})
        self._lock = threading.Lock()

    def register(
        self,
        name: str,
        func: TransformationFunc,
        description: str = "",
        validate: Optional[ParamsValidator] = None,
    ) -> None:
        """Register a transformation, replacing any existing one with the same name."""
        key = normalize_name(name)
        if not key:
            raise ValueError("Transformation name must not be empty")
        with self._lock:
            if key in self._transformations:
                logger.debug("Replacing transformation '%s'", key)
            self._transformations[key] = RegisteredTransformation(
                name=key, func=func, description=description, validate=validate
            )

    def get(self, name: str) -> RegisteredTransformation:
        """Look up a transformation by name (legacy suffix allowed)."""
        key = normalize_name(name)
        try:
            return self._transformations[key]
        except KeyError:
            available = ", ".join(sorted(self._transformations))
            raise UnknownTransformationError(
                f"Unknown transformation '{name}'. Available transformations: {available}"
            ) from None

    def bind(self, name: str, params: Optional[Mapping[str, Any]] = None) -> BoundTransformation:
        """Resolve a transformation and validate its parameters.

        Raises:
            UnknownTransformationError: If the name is not registered
            ValueError: If the parameters are invalid for the transformation
        """
        registered = self.get(name)
        params = dict(params or {})
        if registered.validate is not None:
            registered.validate(params)
        return BoundTransformation(name=registered.name, func=registered.func, params=params)

    def names(self) -> list[str]:
        """Sorted names of all registered transformations."""
        return sorted(self._transformations)

    def items(self) -> list[RegisteredTransformation]:
        """All registered transformations sorted by name."""
        return [self._transformations[name] for name in self.names()]

    def copy(self) -> "TransformationRegistry":
        """Return an independent registry with the same entries."""
        return TransformationRegistry(self._transformations)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._transformations


_default_registry: TransformationRegistry | None = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> TransformationRegistry:
    """Get the process-wide registry, populated with the built-in transformations."""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            from .builtin import register_builtins

            registry = TransformationRegistry()
            register_builtins(registry)
            _default_registry = registry
        return _default_registry


def register_transformation(
    name: str,
    func: TransformationFunc,
    description: str = "",
    validate: Optional[ParamsValidator] = None,
) -> None:
    """Register a transformation on the default registry.

    Must be called before loading any ruleset that references the name.
    """
    get_default_registry().register(name, func, description, validate)
