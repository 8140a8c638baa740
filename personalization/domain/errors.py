"""Error taxonomy shared by the analyzers and the real-time pipeline."""


class PersonalizationError(Exception):
    code: str = "personalization_error"
    status: int = 400

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code: self.code = code
        if status: self.status = status


class NotInitialized(PersonalizationError):
    """Predictor invoked before any weights exist."""
    code = "not_initialized"
    status = 409


class MalformedInput(PersonalizationError):
    code = "malformed_input"
    status = 422


class DeliveryFailure(PersonalizationError):
    """Identity no longer reachable."""
    code = "delivery_failure"
    status = 410


class TrainingFailure(PersonalizationError):
    code = "training_failure"
    status = 422


class UnknownAnalyzer(PersonalizationError):
    code = "unknown_analyzer"
    status = 404
