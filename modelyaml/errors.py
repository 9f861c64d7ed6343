"""Shared exception types for model resolution."""


class ResolutionError(Exception):
    """Base class for structural failures that abort a resolution request.

    *kind* is the tag reported to callers; *stage* is filled in by the
    resolver with the stage that was running when the error surfaced.
    """

    kind = "ResolutionError"

    def __init__(self, message: str) -> None:
        self.stage: str | None = None
        super().__init__(message)


class CycleDetected(ResolutionError):
    """Raised when following ``base`` references revisits a model id.

    *path* lists the ids in visiting order, ending with the repeated id.
    """

    kind = "CycleDetected"

    def __init__(self, path: list[str]) -> None:
        self.path = list(path)
        super().__init__(f"Cycle in base references: {' -> '.join(self.path)}")


class UnknownReference(ResolutionError):
    """Raised when a ``base`` reference names a model that is not stored."""

    kind = "UnknownReference"

    def __init__(self, model_id: str, referenced_by: str) -> None:
        self.model_id = model_id
        self.referenced_by = referenced_by
        super().__init__(f"Unknown base reference '{model_id}' (from {referenced_by})")


class EmptyChain(ResolutionError):
    """Raised when the requested model id has no definition at all."""

    kind = "EmptyChain"

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        super().__init__(f"No definition stored for '{model_id}'")


class DuplicateConcreteKey(Exception):
    """Raised when storing a definition whose concrete base key is already
    owned by a different model."""

    def __init__(self, key: str, owner: str, model_id: str) -> None:
        self.key = key
        self.owner = owner
        self.model_id = model_id
        super().__init__(
            f"Concrete base key '{key}' of {model_id} is already declared by {owner}"
        )


class DefinitionLoadError(Exception):
    """Raised when a definition document cannot be read or parsed.

    Carries *source* (a file path or URL) and a human-readable *details*
    string.
    """

    def __init__(self, source: str, details: str) -> None:
        self.source = source
        self.details = details
        super().__init__(f"Could not load definition from {source}: {details}")
