"""Error taxonomy for the nutrition engine."""

USER_FACING_FAILURE = "Failed to process nutrition data"


class NutritionEngineError(Exception):
    """Base class for engine errors."""

    @property
    def user_message(self) -> str:
        """Message safe to show to end users."""
        return USER_FACING_FAILURE


class ValidationError(NutritionEngineError, ValueError):
    """Malformed input to a computation or service call."""


class NotFoundError(NutritionEngineError, LookupError):
    """A referenced entity does not exist for the caller."""

    @property
    def user_message(self) -> str:
        return str(self)


class ProviderFailure(NutritionEngineError):
    """A nutrition provider failed, timed out or returned garbage."""

    @property
    def user_message(self) -> str:
        return str(self)


class ProviderUnavailableError(ProviderFailure):
    """A nutrition provider is not configured."""


class ImportCancelledError(NutritionEngineError):
    """The caller cancelled an in-flight nutrition import."""
