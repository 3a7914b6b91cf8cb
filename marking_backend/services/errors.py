class MarkingError(RuntimeError):
    """Base for every failure an evaluation can surface to its caller."""


class UnknownQuestionType(MarkingError):
    def __init__(self, question_type: str, msg: str = ""):
        super().__init__(msg or f"No marking config found for question type: {question_type}")
        self.question_type = question_type


class ConfigurationError(MarkingError):
    pass


class MissingApiKey(ConfigurationError):
    def __init__(self):
        super().__init__("Missing API key for marking service")


class RemoteEvaluationError(MarkingError):
    def __init__(self, status_code: int, body: str = "", msg: str = ""):
        super().__init__(msg or f"Marking API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TransportError(MarkingError):
    def __init__(self, cause: BaseException):
        super().__init__(f"Marking API unreachable: {cause!r}")
        self.cause = cause
