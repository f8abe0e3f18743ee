"""Pipeline error taxonomy."""


class PipelineError(Exception):
    """Base error. Carries enough context for a caller-level retry decision."""

    def __init__(
        self,
        message: str,
        category: str | None = None,
        variation: int | None = None,
        project_id: str | None = None,
    ):
        self.category = category
        self.variation = variation
        self.project_id = project_id
        super().__init__(message)

    def context(self) -> dict:
        """Return the non-empty diagnostic fields."""
        fields = {
            "category": self.category,
            "variation": self.variation,
            "project_id": self.project_id,
        }
        return {k: v for k, v in fields.items() if v is not None}


class ParseError(PipelineError):
    """Generated text could not be decoded into the required shape."""

    def __init__(self, message: str, raw_output: str = "", **kwargs):
        self.raw_output = raw_output
        super().__init__(message, **kwargs)


class ValidationError(PipelineError):
    """Decoded data failed a structural invariant."""
    pass


class PlanningError(PipelineError):
    """Collection planning failed."""
    pass


class ManifestDecodeError(PlanningError, ParseError):
    """Planner response was not decodable JSON."""
    pass


class ManifestValidationError(PlanningError, ValidationError):
    """Planner response decoded but broke a manifest invariant."""
    pass


class GenerationError(PipelineError):
    """Upstream model call failed or timed out."""
    pass


class GenerationTimeoutError(GenerationError):
    """Upstream model call exceeded its deadline."""
    pass


class CompositeError(PipelineError):
    """Image backend returned no image part for a composite request."""
    pass


class NotFoundError(PipelineError):
    """Trait or project lookup missed."""
    pass


class ConfigurationError(PipelineError):
    """Required credential missing and no simulated fallback allowed."""
    pass
