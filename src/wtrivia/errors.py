class TriviaError(Exception):
    """Base class for game errors surfaced to the user as a closing message."""


class NoQuestionsError(TriviaError):
    def __init__(self, message: str = "No questions."):
        super().__init__(message)


class NotEnoughAnswersError(TriviaError):
    def __init__(self, message: str = "There is a problem with the answers."):
        super().__init__(message)


class MissingSessionStateError(TriviaError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing session state: {field}")


class PersistenceUnavailableError(TriviaError):
    pass
